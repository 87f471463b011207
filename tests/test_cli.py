"""
Tests for the toylang command-line interface.
"""

import pytest
import textwrap

from toylang.__main__ import main


@pytest.fixture
def program(tmp_path):
    def write(source, name="main.toy"):
        path = tmp_path / name
        path.write_text(textwrap.dedent(source), encoding="utf-8")
        return path
    return write


class TestCheck:
    """Test the check command."""

    def test_check_ok(self, program, capsys):
        """A valid file reports its statement count."""
        path = program("""
            x = 1
            def f():
                return x
            end
            println(f())
        """)
        assert main(["check", str(path)]) == 0
        assert capsys.readouterr().out == "OK: main.toy - 3 statement(s)\n"

    def test_check_syntax_error(self, program, capsys):
        """A file that does not parse fails with a diagnostic."""
        path = program("if x:\nprintln(1)\n")
        assert main(["check", str(path)]) == 1
        assert "E102" in capsys.readouterr().err

    def test_check_missing_file(self, tmp_path, capsys):
        """A missing file fails."""
        assert main(["check", str(tmp_path / "nope.toy")]) == 1
        assert "File not found" in capsys.readouterr().err

    def test_check_undecodable_file(self, tmp_path, capsys):
        """A file that is not valid UTF-8 fails the check."""
        path = tmp_path / "bad.toy"
        path.write_bytes(b'println("\xff\xfe")\n')
        assert main(["check", str(path)]) == 1
        assert "Error:" in capsys.readouterr().err


class TestRun:
    """Test the run command."""

    def test_run_program(self, program, capsys):
        """The program's output goes to stdout."""
        path = program("""
            name = "world"
            println("hello " + name)
        """)
        assert main(["run", str(path)]) == 0
        assert capsys.readouterr().out == "hello world\n"

    def test_run_imports_from_script_directory(self, program, capsys):
        """Modules next to the script are importable."""
        program("def twice(x):\nreturn x * 2\nend\n", name="helpers.toy")
        path = program("""
            import helpers
            println(helpers.twice(21))
        """)
        assert main(["run", str(path)]) == 0
        assert capsys.readouterr().out == "42\n"

    def test_run_with_config(self, program, tmp_path, capsys):
        """Module paths come from the config file."""
        lib = tmp_path / "lib"
        lib.mkdir()
        (lib / "greet.toy").write_text('def hi():\nreturn "hi"\nend\n', encoding="utf-8")
        config = tmp_path / "toylang.yaml"
        config.write_text(f"module_paths: ['{lib.as_posix()}']\n", encoding="utf-8")
        path = program("""
            import greet
            println(greet.hi())
        """)
        assert main(["run", str(path), "--config", str(config)]) == 0
        assert capsys.readouterr().out == "hi\n"

    def test_run_uncaught(self, program, capsys):
        """An uncaught exception is reported and fails the run."""
        path = program('throw "bad"\n')
        assert main(["run", str(path)]) == 1
        out = capsys.readouterr().out
        assert out.startswith("Uncaught bad\n")
        assert "main.toy:1 throw \"bad\"" in out

    def test_run_runtime_failure(self, program, capsys):
        """Host-level failures go to stderr."""
        path = program("println(missing)\n")
        assert main(["run", str(path)]) == 1
        assert "missing is not defined" in capsys.readouterr().err

    def test_run_undecodable_file(self, tmp_path, capsys):
        """A source file that is not valid UTF-8 fails with an error."""
        path = tmp_path / "bad.toy"
        path.write_bytes(b'println("\xff\xfe")\n')
        assert main(["run", str(path)]) == 1
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "can't decode byte 0xff" in captured.err

    def test_run_undecodable_module(self, program, tmp_path, capsys):
        """An imported module that is not valid UTF-8 fails with E409."""
        (tmp_path / "garbled.toy").write_bytes(b"x = \xff\n")
        path = program("""
            import garbled
            println(garbled.x)
        """)
        assert main(["run", str(path)]) == 1
        err = capsys.readouterr().err
        assert "E409" in err
        assert "garbled" in err

    def test_run_bad_config(self, program, tmp_path, capsys):
        """An invalid config file fails before running."""
        config = tmp_path / "bad.yaml"
        config.write_text("unknown: 1\n", encoding="utf-8")
        path = program("println(1)\n")
        assert main(["run", str(path), "-c", str(config)]) == 1
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "unknown configuration keys" in captured.err

    def test_no_command(self):
        """A command is required."""
        with pytest.raises(SystemExit):
            main([])
