"""
Tests for interpreter configuration.
"""

import pytest
import textwrap

from toylang import InterpreterConfig, load_config


class TestInterpreterConfig:
    """Test config defaults and validation."""

    def test_defaults(self):
        """A default config searches the current directory."""
        config = InterpreterConfig()
        assert config.module_paths == ["."]
        assert config.module_suffix == ".toy"
        assert config.encoding == "utf-8"
        assert config.log_level == "WARNING"
        assert config.recursion_limit == 10000

    def test_from_mapping(self):
        """Known keys override defaults."""
        config = InterpreterConfig.from_mapping({
            "module_paths": ["lib", "vendor"],
            "recursion_limit": 5000,
            "log_level": "debug",
        })
        assert config.module_paths == ["lib", "vendor"]
        assert config.recursion_limit == 5000
        assert config.log_level == "DEBUG"

    def test_single_module_path(self):
        """A single path string becomes a one-element list."""
        assert InterpreterConfig.from_mapping({"module_paths": "lib"}).module_paths == ["lib"]

    def test_unknown_key(self):
        """Unknown keys are rejected."""
        with pytest.raises(ValueError, match="unknown configuration keys: colour"):
            InterpreterConfig.from_mapping({"colour": "blue"})

    def test_bad_module_paths(self):
        """module_paths must hold strings."""
        with pytest.raises(ValueError):
            InterpreterConfig.from_mapping({"module_paths": [1, 2]})

    def test_bad_recursion_limit(self):
        """recursion_limit must be a reasonably large integer."""
        for value in (10, "many", True, 2.5):
            with pytest.raises(ValueError):
                InterpreterConfig.from_mapping({"recursion_limit": value})

    def test_bad_log_level(self):
        """Log levels must be known to logging."""
        with pytest.raises(ValueError, match="unknown log level"):
            InterpreterConfig.from_mapping({"log_level": "chatty"})

    def test_configs_do_not_share_paths(self):
        """Each config owns its module path list."""
        a = InterpreterConfig()
        b = InterpreterConfig()
        a.module_paths.append("lib")
        assert b.module_paths == ["."]


class TestLoadConfig:
    """Test YAML loading."""

    def test_load_yaml(self, tmp_path):
        """Settings are read from a YAML mapping."""
        path = tmp_path / "toylang.yaml"
        path.write_text(textwrap.dedent("""
            module_paths:
              - lib
              - vendor
            module_suffix: .tl
            log_level: info
        """), encoding="utf-8")
        config = load_config(path)
        assert config.module_paths == ["lib", "vendor"]
        assert config.module_suffix == ".tl"
        assert config.log_level == "INFO"
        assert config.encoding == "utf-8"

    def test_empty_file(self, tmp_path):
        """An empty document yields the defaults."""
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == InterpreterConfig()

    def test_missing_file(self, tmp_path):
        """A missing file is an error, not silent defaults."""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml")

    def test_non_mapping(self, tmp_path):
        """The document must be a mapping."""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError, match="must be a mapping"):
            load_config(path)

    def test_unknown_key_in_file(self, tmp_path):
        """Unknown keys in the file are rejected."""
        path = tmp_path / "bad.yaml"
        path.write_text("paths: [lib]\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_config(path)
