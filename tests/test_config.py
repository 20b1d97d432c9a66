import io

import pytest

from kmodkit.config import (
    Config,
    Search,
    SearchType,
    kernel_matches,
    list_config_files,
)
from kmodkit.log import Logger, Priority


def _config(kversion="5.10.0"):
    stream = io.StringIO()
    logger = Logger(program_name="depmod", priority=Priority.DEBUG, stream=stream)
    return Config(kversion=kversion, logger=logger), stream


def test_kernel_matches_star():
    assert kernel_matches("*", "anything")


def test_kernel_matches_regex():
    assert kernel_matches(r"^5\.10", "5.10.0")
    assert not kernel_matches(r"^6\.", "5.10.0")


def test_kernel_matches_invalid_regex_is_false():
    assert kernel_matches("(", "(") is False


def test_search_kinds():
    assert Search.from_word("built-in") == Search(SearchType.BUILTIN)
    assert Search.from_word("external") == Search(SearchType.EXTERNAL)
    assert Search.from_word("updates") == Search(SearchType.PATH, "updates")
    assert str(Search(SearchType.BUILTIN)) == "built-in"


def test_add_search_prepends():
    cfg, _ = _config()
    cfg.add_search("first")
    cfg.add_search("second")
    assert [s.path for s in cfg.searches] == ["second", "first"]


def test_add_override_builds_path():
    cfg, _ = _config()
    path = cfg.add_override("e1000", "kernel/drivers")
    assert path == "kernel/drivers/e1000"
    assert cfg.overrides == [path]


def test_parse_file_commands(tmp_path):
    conf = tmp_path / "a.conf"
    conf.write_text(
        "# comment\n"
        "\n"
        "search updates built-in\n"
        "override e1000 * kernel/extra\n"
        "override skipme ^9\\. kernel/none\n"
        "external * /opt/ext\n"
        "exclude foo\tbar\n"
        "search extra \\\n"
        "  more\n"
    )
    cfg, _ = _config()
    cfg.parse_file(str(conf))
    assert [str(s) for s in cfg.searches] == ["more", "extra", "built-in", "updates"]
    assert cfg.overrides == ["kernel/extra/e1000"]
    assert cfg.externals == ["/opt/ext"]
    assert cfg.excludes == ["bar", "foo"]


def test_parse_file_bad_lines_are_reported(tmp_path):
    conf = tmp_path / "a.conf"
    conf.write_text("bogus thing\noverride onlyname\n")
    cfg, stream = _config()
    cfg.parse_file(str(conf))
    log = stream.getvalue()
    assert "ignoring bad line starting with 'bogus'" in log
    assert "ignoring bad line starting with 'override'" in log
    assert cfg.overrides == []


def test_parse_file_missing_raises(tmp_path):
    cfg, _ = _config()
    with pytest.raises(OSError):
        cfg.parse_file(str(tmp_path / "missing.conf"))


def test_list_config_files_sorted_and_filtered(tmp_path):
    first = tmp_path / "first"
    second = tmp_path / "second"
    first.mkdir()
    second.mkdir()
    (first / "b.conf").write_text("")
    (first / "a.conf").write_text("")
    (first / ".hidden.conf").write_text("")
    (first / "readme").write_text("")
    (first / "sub.conf").mkdir()
    (second / "a.conf").write_text("")
    (second / "c.conf").write_text("")
    single = tmp_path / "z.conf"
    single.write_text("")

    result = list_config_files(
        [str(first), str(second), str(tmp_path / "missing"), str(single)]
    )
    assert result == [
        str(first / "a.conf"),
        str(first / "b.conf"),
        str(second / "c.conf"),
        str(single),
    ]


def test_load_adds_updates_without_search(tmp_path):
    (tmp_path / "x.conf").write_text("exclude foo\n")
    cfg, _ = _config()
    cfg.load([str(tmp_path)])
    assert cfg.searches == [Search(SearchType.PATH, "updates")]
    assert cfg.excludes == ["foo"]


def test_load_keeps_configured_search(tmp_path):
    (tmp_path / "x.conf").write_text("search built-in\n")
    cfg, _ = _config()
    cfg.load([str(tmp_path)])
    assert cfg.searches == [Search(SearchType.BUILTIN)]


def test_load_earlier_path_wins_for_same_name(tmp_path):
    high = tmp_path / "high"
    low = tmp_path / "low"
    high.mkdir()
    low.mkdir()
    (high / "same.conf").write_text("exclude fromhigh\n")
    (low / "same.conf").write_text("exclude fromlow\n")
    cfg, _ = _config()
    cfg.load([str(high), str(low)])
    assert cfg.excludes == ["fromhigh"]


def test_should_exclude_dir():
    cfg, _ = _config()
    cfg.add_exclude("skipme")
    for name in (".", "..", "build", "source", "skipme"):
        assert cfg.should_exclude_dir(name)
    assert not cfg.should_exclude_dir("kernel")
    assert not cfg.should_exclude_dir(".hidden")