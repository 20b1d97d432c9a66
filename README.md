# kmodkit

Building blocks for working with Linux kernel module data from Python:

- the prefix-compressed trie behind the binary `modules.*.bin` indexes,
  and its writer;
- reading `depmod.d` configuration (`search`, `override`, `external`,
  `exclude`);
- a kernel symbol table fed from `Module.symvers` or `System.map`;
- resolving symbol dependencies between modules, ordering them and
  reporting dependency cycles;
- turning `modules.devname` into static device node descriptions;
- helpers for the argument and environment handling of `modprobe`
  (`MODPROBE_OPTIONS`, `$CMDLINE_OPTS` in install/remove commands,
  module option quoting, `--wait` values, report lines).

The package has no dependencies outside the standard library.

## Installation

```
pip install kmodkit
```

For running the test suite:

```
pip install "kmodkit[test]"
pytest
```

## Command line

`kmodkit-static-nodes` reads
`/lib/modules/$(uname -r)/modules.devname` and prints the static device
nodes that the running kernel's modules want:

```
kmodkit-static-nodes
kmodkit-static-nodes --format=tmpfiles --output=/run/tmpfiles.d/static-nodes.conf
kmodkit-static-nodes -f devname
```

Options: `-f/--format=FORMAT`, `-o/--output=FILE` (parent directories
are created; default is standard output), `-h/--help`.

| format     | output                                                   |
|------------|----------------------------------------------------------|
| `human`    | (default) a human readable format. Do not parse.         |
| `tmpfiles` | the tmpfiles.d(5) format used by systemd-tmpfiles.       |
| `devname`  | the `modules.devname` format.                            |

A missing `modules.devname` is reported as a warning and the command
exits successfully. Malformed entries are reported on standard error
and make the command exit with status 1, but the valid entries are
still written. An unknown format prints the help and exits with 1.

The same conversion is available in code:

```python
from kmodkit.static_nodes import convert, parse_devname_line, format_tmpfiles

text, invalid = convert(["fuse fuse c10:229\n"], "tmpfiles")
entry = parse_devname_line("snd_timer snd/timer c116:33")
print(format_tmpfiles(entry))
# d /dev/snd 0755 - - -
# c! /dev/snd/timer 0600 - - - 116:33
```

## Library use

### Binary module indexes

`kmodkit.index.IndexNode` is the trie that backs the `modules.*.bin`
files. Keys and values must be 7-bit ASCII; anything else raises
`BadIndexCharacter`.

```python
from kmodkit.index import IndexNode

root = IndexNode()
root.insert("snd_hda_intel", "kernel/sound/snd-hda-intel.ko:", 0)
duplicate = root.insert("snd_hda_intel", "kernel/sound/snd-hda-intel.ko:", 1)  # True

data = root.to_bytes()          # magic, version, root offset, nodes
with open("modules.dep.bin", "wb") as fp:
    root.write(fp)              # the stream must be seekable
```

`insert` returns whether the same value was already stored under the
key; values under one key are kept in priority order.

### Configuration

```python
from kmodkit.config import Config, list_config_files

cfg = Config(kversion="6.1.0")
cfg.load(["/etc/depmod.d", "/lib/depmod.d"])
cfg.should_exclude_dir("build")   # True
```

`load()` with no argument uses `/etc/depmod.d`, `/run/depmod.d`,
`/usr/local/lib/depmod.d`, `/usr/lib/depmod.d` and `/lib/depmod.d`.
Only files ending in `.conf` are read from directories; files are taken
in name order across all paths, the first file of a given name winning
(`list_config_files` gives that list). Lines ending in a backslash
continue on the next line. When no `search` line is present, `updates`
is added as the search entry. `override` and `external` lines apply
only when their kernel version pattern matches (`kernel_matches`: `*`
matches anything, otherwise a regular expression searched in the
version). The lists on `Config` hold the most recently added entry
first; `searches` holds `Search` objects whose `type` is a
`SearchType`.

### Symbols

`kmodkit.symbols.SymbolTable` maps names to `Symbol` entries (name,
CRC, owning `Module` or `None` for the kernel itself). An optional
`sym_prefix` character is dropped from names; `find` also ignores a
leading `.`. `load_symvers` reads `vmlinux` lines of a `Module.symvers`
file, `load_system_map` reads `__ksymtab_` entries of a `System.map`;
both raise `OSError` when the file cannot be opened and both add the
symbols the kernel loader provides (`add_fake_symbols`).

`Module` describes one module: its path, name, relative paths, exported
symbols, needed symbols (`DependencySymbol` with a `SymbolBinding`),
modinfo pairs and, once resolved, its dependencies.

### Dependencies

```python
from kmodkit.depgraph import (
    resolve_dependencies, calculate_order, all_sorted_dependencies,
    DependencyCycleError,
)

resolve_dependencies(modules, table, check_symvers=True, print_unknown=True)
try:
    order = calculate_order(modules)
except DependencyCycleError as exc:
    print(exc.cycles)            # e.g. [["a", "b", "a"]]
deps = all_sorted_dependencies(modules[0])
```

`resolve_dependencies` links each module to the owners of the symbols
it needs, warning about unknown symbols and CRC mismatches when asked.
`calculate_order` sorts modules without users first and sorts each
module's direct dependencies by that order; `find_cycles` lists the
cycles on its own. `all_sorted_dependencies` returns every direct and
indirect dependency once, in that order.

### modprobe helpers

- `kmodkit.modprobe_env.split_env_options` splits an options string,
  honouring quotes; `prepend_options_from_env` puts the words of
  `MODPROBE_OPTIONS` right after the program name;
  `append_env_option` extends that variable.
- `kmodkit.modprobe_args.options_from_array` joins module options,
  double-quoting values that contain spaces; `parse_wait` reads a
  `--wait` value (decimal, `0x` hex or leading-zero octal) and raises
  `InvalidWaitValue` otherwise.
- `kmodkit.modprobe_commands.expand_command` substitutes
  `$CMDLINE_OPTS`; `run_command` runs an install or remove command
  through the shell with `MODPROBE_MODULE` set, only returns it with
  `dry_run=True`, and raises `CommandError` when it fails.
- `kmodkit.modprobe_report` formats `--show-modversions` lines
  (`format_version_line`), probe actions (`format_action`) and
  insertion error messages (`insert_error_message`).

### Logging

`kmodkit.log.Logger` prints `<program>: <PRIORITY>: <message>` to
standard error (or a given stream), or to syslog after `open(True)`.
Messages less severe than the logger's `priority` are dropped, and a
message of critical priority raises `FatalError` after it is written.
`prio_to_str` gives the label for a priority.

## What kmodkit does not do

- It does not read module files: exported symbols, needed symbols and
  modinfo of each `Module` must be filled in by the caller.
- It does not walk a module tree, pick between duplicate module copies
  or apply `modules.order`, and it does not write the `modules.dep`,
  `modules.alias`, `modules.symbols` and related files; it gives the
  index writer and the dependency data from which they are made.
- It does not load, unload or list modules in the running kernel and
  has no `modprobe`, `insmod`, `rmmod`, `lsmod` or `modinfo` command.