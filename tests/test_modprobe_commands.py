import os

import pytest

from kmodkit.modprobe_commands import CommandError, expand_command, run_command


def test_expand_replaces_every_occurrence():
    cmd = "/sbin/modprobe --ignore-install foo $CMDLINE_OPTS; echo $CMDLINE_OPTS"
    assert expand_command(cmd, "x=1") == (
        "/sbin/modprobe --ignore-install foo x=1; echo x=1"
    )


def test_expand_without_options():
    assert expand_command("run $CMDLINE_OPTS now", None) == "run  now"


def test_expand_leaves_other_text():
    assert expand_command("echo hi", "a=b") == "echo hi"


def test_dry_run_does_not_execute(tmp_path):
    target = tmp_path / "made"
    cmd = run_command("foo", "install", f"touch {target} $CMDLINE_OPTS", "", True)
    assert not target.exists()
    assert cmd == f"touch {target} "


def test_run_sets_module_variable(tmp_path):
    target = tmp_path / "out"
    run_command("foo", "install", f'printf %s "$MODPROBE_MODULE" > {target}')
    assert target.read_text() == "foo"
    assert os.environ.get("MODPROBE_MODULE") != "foo"


def test_run_failure_raises_with_status():
    with pytest.raises(CommandError) as info:
        run_command("bar", "remove", "exit 3")
    assert info.value.status == 3
    assert str(info.value) == "Error running remove command for bar"