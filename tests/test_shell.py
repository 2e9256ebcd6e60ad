"""Tests for the recording shell and its bash renderer."""

import pytest

from dircache.shell import Instruction, ShellScript, render


class TestShellScriptRecording:
    """Tests for instruction recording."""

    def test_records_in_emission_order(self, sh):
        sh.export("CASHER_DIR", "$HOME/.casher")
        sh.mkdir("$CASHER_DIR/bin", recursive=True, echo=False)
        sh.raw("true")

        assert [i.kind for i in sh.instructions] == ["export", "mkdir", "raw"]
        assert sh.instructions[0].args == ("CASHER_DIR", "$HOME/.casher")
        assert sh.instructions[1].options == {"recursive": True, "echo": False}

    def test_cmd_defaults(self, sh):
        instruction = sh.cmd("make")
        assert instruction.options == {
            "echo": True,
            "retry": False,
            "assert_": True,
            "timing": False,
        }

    def test_blocks_nest(self, sh):
        """Instructions inside a block become its children."""
        with sh.fold("cache.1"):
            sh.echo("hello")
            with sh.if_("-f file"):
                sh.cmd("run", echo=False)
        sh.raw("after")

        assert [i.kind for i in sh.instructions] == ["fold", "raw"]
        fold = sh.instructions[0]
        assert fold.args == ("cache.1",)
        assert [i.kind for i in fold.children] == ["echo", "if"]
        assert fold.children[1].children[0].args == ("run",)

    def test_block_closes_on_error(self, sh):
        with pytest.raises(RuntimeError):
            with sh.if_("-f file"):
                raise RuntimeError("boom")
        sh.raw("after")
        assert [i.kind for i in sh.instructions] == ["if", "raw"]

    def test_walk_and_find(self, sh):
        with sh.fold("cache.1"):
            sh.cmd("a")
            with sh.if_("x"):
                sh.cmd("b")

        assert [i.kind for i in sh.walk()] == ["fold", "cmd", "if", "cmd"]
        assert [i.args[0] for i in sh.find("cmd")] == ["a", "b"]


class TestRender:
    """Tests for bash rendering."""

    def test_echoed_asserted_command(self, sh):
        sh.cmd("make test")
        assert sh.to_bash() == "echo '$ make test'\nmake test || exit $?\n"

    def test_silent_non_asserted_command(self, sh):
        sh.cmd("make test", echo=False, assert_=False)
        assert sh.to_bash() == "make test\n"

    def test_custom_echo_text(self, sh):
        sh.cmd("curl x", echo="Installing caching utilities", assert_=False)
        assert sh.to_bash().splitlines()[0] == "echo 'Installing caching utilities'"

    def test_retry(self, sh):
        sh.cmd("curl x", echo=False, retry=True, assert_=False)
        assert sh.to_bash() == "for _attempt in 1 2 3; do curl x && break; done\n"

    def test_timing(self, sh):
        sh.cmd("casher fetch", echo=False, assert_=False, timing=True)
        assert sh.to_bash() == "time casher fetch\n"

    def test_if_block_is_indented(self, sh):
        with sh.if_("-f $BIN"):
            sh.chmod("+x", "$BIN", assert_=False, echo=False)

        assert sh.to_bash() == "if [ -f $BIN ]; then\n  chmod +x $BIN\nfi\n"

    def test_fold_markers(self, sh):
        with sh.fold("cache.1"):
            sh.raw("true")

        assert sh.to_bash().splitlines() == [
            "echo -en 'fold:start:cache.1\\r'",
            "true",
            "echo -en 'fold:end:cache.1\\r'",
        ]

    def test_colored_echo(self, sh):
        sh.echo("Worker S3 config missing: bucket name", ansi="red")
        assert sh.to_bash() == (
            "echo -e '\\033[31;1mWorker S3 config missing: bucket name\\033[0m'\n"
        )

    def test_export_and_mkdir(self, sh):
        sh.export("CASHER_DIR", "$HOME/.casher")
        sh.mkdir("$CASHER_DIR/bin", recursive=True, echo=False)

        assert sh.to_bash().splitlines() == [
            "export CASHER_DIR=$HOME/.casher",
            "mkdir -p $CASHER_DIR/bin || exit $?",
        ]

    def test_echo_quotes_text(self, sh):
        sh.echo("it's done")
        assert sh.to_bash() == "echo 'it'\"'\"'s done'\n"

    def test_unknown_kind_raises(self):
        with pytest.raises(ValueError, match="Unknown instruction kind"):
            render([Instruction(kind="bogus")])
