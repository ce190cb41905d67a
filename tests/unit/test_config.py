"""Tests for tokensmith.toml loading."""

import pytest

from tokensmith.core.config import (
    CONFIG_FILE,
    TokensmithConfig,
    find_config,
    load_config,
    load_config_or_default,
)
from tokensmith.core.errors import ConfigError
from tokensmith.core.ir import ColorMode


def _write(tmp_path, text: str):
    path = tmp_path / CONFIG_FILE
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadConfig:
    def test_example_config(self, example_dir):
        config = load_config(example_dir / CONFIG_FILE)
        assert config.spec.tokens == example_dir / "tokens.json"
        assert config.spec.components == example_dir / "components.json"
        assert config.engine.prefix == "ts"
        assert config.engine.default_mode == ColorMode.LIGHT
        assert config.contrast.threshold == 4.5
        assert config.contrast.allowed_alphas == (0.1, 0.38, 0.68, 1.0)
        assert config.overrides.path == example_dir / ".tokensmith" / "overrides.json"

    def test_empty_file_gives_defaults(self, tmp_path):
        config = load_config(_write(tmp_path, ""))
        assert config.spec.tokens is None
        assert config.engine.max_hops == 64
        assert config.contrast.allowed_alphas == ()
        assert config.overrides.path == tmp_path / ".tokensmith" / "overrides.json"
        assert config.root == tmp_path

    def test_absolute_paths_are_kept(self, tmp_path):
        target = tmp_path / "elsewhere" / "tokens.yaml"
        config = load_config(_write(tmp_path, f'[spec]\ntokens = "{target.as_posix()}"\n'))
        assert config.spec.tokens == target

    def test_mode_is_case_insensitive(self, tmp_path):
        config = load_config(_write(tmp_path, '[engine]\ndefault_mode = "Dark"\n'))
        assert config.engine.default_mode == ColorMode.DARK

    def test_alphas_are_sorted(self, tmp_path):
        config = load_config(_write(tmp_path, "[contrast]\nallowed_alphas = [1, 0.5]\n"))
        assert config.contrast.allowed_alphas == (0.5, 1)

    @pytest.mark.parametrize(
        "text",
        [
            "[engine\n",
            '[engine]\ndefault_mode = "dim"\n',
            "[engine]\nmax_hops = 0\n",
            '[engine]\nmax_hops = "many"\n',
            '[engine]\nprefix = "--"\n',
            "[contrast]\nthreshold = 0.5\n",
            "[contrast]\nallowed_alphas = [2]\n",
            "[spec]\ntokens = 12\n",
            'spec = "x"\n',
            "engine = 3\n",
            "contrast = [4.5]\n",
            'overrides = "overrides.json"\n',
        ],
    )
    def test_invalid_values(self, tmp_path, text):
        with pytest.raises(ConfigError):
            load_config(_write(tmp_path, text))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(tmp_path / CONFIG_FILE)


class TestFindConfig:
    def test_found_in_parent(self, tmp_path):
        path = _write(tmp_path, "")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config(nested) == path.resolve()

    def test_defaults_without_config(self, monkeypatch):
        monkeypatch.setattr("tokensmith.core.config.find_config", lambda start=None: None)
        config = load_config_or_default()
        assert isinstance(config, TokensmithConfig)
        assert config.spec.tokens is None

    def test_explicit_path(self, tmp_path):
        path = _write(tmp_path, '[engine]\nprefix = "acme"\n')
        assert load_config_or_default(path).engine.prefix == "acme"
