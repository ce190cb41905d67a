"""Tests for the theme engine."""

import json
import logging

import pytest

from tokensmith.core.config import EngineConfig, TokensmithConfig, load_config
from tokensmith.core.engine import ThemeEngine, engine_from_config
from tokensmith.core.errors import SpecLoadError
from tokensmith.core.ir import ChangeEvent, ColorMode, ValueSource
from tokensmith.core.naming import ComponentPath, ThemePath, TokenPath
from tokensmith.core.overrides import InMemoryOverrideBackend
from tokensmith.core.reference_parser import parse_reference
from tokensmith.core.spec_loader import build_spec

PRIMARY_TONE = "--ts-theme--light--palettes-primary-tone"
BUTTON_BG = "--ts-components--button--background-color"
CARD_TEXT = "--ts-components--card--colors-text-color"


@pytest.fixture
def events(engine):
    received: list[ChangeEvent] = []
    engine.subscribe(received.append)
    return received


@pytest.fixture
def broken_engine():
    spec = build_spec(
        {
            "tokens": {
                "color": {"white": "#ffffff"},
                "opacity": {"bad": {"$type": "opacity", "$value": "lots"}},
            }
        },
        {
            "light": {
                "cycle-a-color": "{theme.cycle-b-color}",
                "cycle-b-color": "{theme.cycle-a-color}",
                "dangling-color": "{tokens.color.missing}",
                "broken-color": "{colors.nope}",
                "scrim-opacity": "{tokens.opacity.bad}",
                "plain-color": "{tokens.color.white}",
            }
        },
    )
    return ThemeEngine(spec, backend=InMemoryOverrideBackend())


# =============================================================================
# Resolution
# =============================================================================


class TestResolveExternal:
    def test_computed_value(self, engine):
        resolved = engine.resolve_external(BUTTON_BG)
        assert resolved.value == "#1d4ed8"
        assert resolved.source == ValueSource.COMPUTED
        assert resolved.verified

    def test_theme_names_carry_their_mode(self, engine):
        assert engine.resolve_external("--ts-theme--dark--palettes-primary-tone").value == "#3b82f6"

    def test_component_chain_across_components(self, engine):
        assert engine.resolve_external(CARD_TEXT).value == "#111827"

    def test_unknown_name_uses_category_fallback(self, engine):
        resolved = engine.resolve_external("--ts-components--button--shadow-color")
        assert resolved.value == "#000000"
        assert resolved.source == ValueSource.FALLBACK
        assert engine.resolve_external("--ts-components--button--gap").value == "0px"
        assert engine.resolve_external("--somebody-else").value == "initial"

    def test_component_name_without_entry_uses_fallback_order(self, engine):
        name = "--ts-components--button--variant-ghost--layer-layer-2--padding"
        assert engine.path_for(name) is None

        resolved = engine.resolve_external(name)

        assert resolved.value == "8px"
        assert resolved.source == ValueSource.COMPUTED
        assert engine.direct_target(name) == "--ts-components--button--padding"

    def test_component_default_reached_by_name(self):
        spec = build_spec(
            {"tokens": {"color": {"gray": "#777777"}}},
            None,
            {"components": {"ButtonX": {"border-color": "{tokens.color.gray}"}}},
        )
        engine = ThemeEngine(spec, backend=InMemoryOverrideBackend())

        resolved = engine.resolve_external(engine.names.component("ButtonX", "border-color", "ghost", "layer-2"))

        assert resolved.value == "#777777"
        assert resolved.source == ValueSource.COMPUTED

    def test_external_names_by_kind(self, engine):
        tokens = engine.external_names(TokenPath)
        assert "--ts-tokens--color-white" in tokens
        assert all(name.startswith("--ts-tokens--") for name in tokens)
        assert isinstance(engine.path_for(BUTTON_BG), ComponentPath)
        assert engine.path_for(PRIMARY_TONE) == ThemePath(ColorMode.LIGHT, "palettes/primary/tone")

    def test_resolve_all_covers_one_mode(self, engine):
        values = engine.resolve_all("light")
        assert not any(name.startswith("--ts-theme--dark--") for name in values)
        assert values["--ts-theme--light--typography-body-font"].value == "Inter, sans-serif"
        assert values["--ts-tokens--opacity-38"].value == 0.38
        assert values[BUTTON_BG].value == "#1d4ed8"

    def test_resolve_reference_directly(self, engine):
        ref = parse_reference("{ui-kit.button.variants.ghost.layers.layer-2.border-color}")
        assert engine.resolve(ref) == "#1d4ed8"
        assert engine.resolve(ref, engine.context.switch_mode("dark")) == "#3b82f6"

    def test_custom_properties_with_indirection(self, engine):
        properties = engine.custom_properties("light", indirection=True)
        assert properties[BUTTON_BG] == f"var({PRIMARY_TONE}, #1d4ed8)"
        assert properties["--ts-tokens--color-white"] == "#ffffff"
        assert properties["--ts-tokens--opacity-100"] == "1"

    def test_trace_follows_active_overrides(self, engine):
        assert engine.trace(BUTTON_BG) == [BUTTON_BG, PRIMARY_TONE, "--ts-tokens--color-blue-700"]
        engine.set_override(PRIMARY_TONE, "#7c3aed")
        assert engine.trace(BUTTON_BG) == [BUTTON_BG, PRIMARY_TONE]
        assert engine.trace("--somebody-else") == []

    def test_opacity_steps_come_from_tokens(self, engine):
        assert engine.opacity_steps() == [0.1, 0.38, 0.68, 1.0]

    def test_dependents(self, engine):
        dependents = engine.dependents_of(PRIMARY_TONE)
        assert BUTTON_BG in dependents
        assert "--ts-components--button--variant-ghost--layer-layer-2--border-color" in dependents
        assert CARD_TEXT in engine.dependents_of("--ts-tokens--color-gray-900")


# =============================================================================
# Failures
# =============================================================================


class TestFailures:
    def test_parse_errors_are_reported_at_load(self, broken_engine):
        assert len(broken_engine.diagnostics) == 1
        assert "broken-color" in broken_engine.diagnostics[0]

    def test_cycle_falls_back_with_diagnostic(self, broken_engine):
        resolved = broken_engine.resolve_external("--ts-theme--light--cycle-a-color")
        assert resolved.source == ValueSource.FALLBACK
        assert resolved.value == "#000000"
        assert "cycle" in resolved.error.lower()
        assert len(broken_engine.diagnostics) == 2

    def test_cycle_leaves_other_names_alone(self, broken_engine):
        broken_engine.resolve_external("--ts-theme--light--cycle-a-color")
        assert broken_engine.resolve_external("--ts-theme--light--plain-color").value == "#ffffff"

    def test_invalid_entry_falls_back(self, broken_engine):
        resolved = broken_engine.resolve_external("--ts-theme--light--broken-color")
        assert resolved.source == ValueSource.FALLBACK
        assert resolved.value == "#000000"

    def test_missing_token_falls_back_with_warning(self, broken_engine, caplog):
        with caplog.at_level(logging.WARNING, logger="tokensmith.core.engine"):
            resolved = broken_engine.resolve_external("--ts-theme--light--dangling-color")
        assert resolved.source == ValueSource.FALLBACK
        assert "Falling back" in caplog.text
        assert len(broken_engine.diagnostics) == 1

    def test_unverified_opacity_passes_through(self, broken_engine):
        resolved = broken_engine.resolve_external("--ts-theme--light--scrim-opacity")
        assert resolved.value == "lots"
        assert resolved.source == ValueSource.COMPUTED
        assert resolved.verified is False


# =============================================================================
# Overrides
# =============================================================================


class TestOverrides:
    def test_override_propagates_to_dependents(self, engine, events):
        engine.set_override(PRIMARY_TONE, "#7c3aed")

        assert len(events) == 1
        assert PRIMARY_TONE in events[0].names
        assert BUTTON_BG in events[0].names

        button = engine.resolve_external(BUTTON_BG)
        assert button.value == "#7c3aed"
        assert button.source == ValueSource.COMPUTED

        tone = engine.resolve_external(PRIMARY_TONE)
        assert tone.value == "#7c3aed"
        assert tone.source == ValueSource.OVERRIDE

    def test_override_does_not_leak_into_other_mode(self, engine):
        engine.set_override(PRIMARY_TONE, "#7c3aed")
        dark = engine.context.switch_mode("dark")
        assert engine.resolve_external(BUTTON_BG, dark).value == "#3b82f6"

    def test_subscriber_sees_new_value(self, engine):
        seen: list[str] = []
        engine.subscribe(lambda event: seen.append(engine.resolve_external(BUTTON_BG).value))

        engine.set_override(PRIMARY_TONE, "#7c3aed")

        assert seen == ["#7c3aed"]

    def test_clear_override_restores_computed(self, engine):
        engine.set_override(PRIMARY_TONE, "#7c3aed")
        assert engine.clear_override(PRIMARY_TONE)
        assert engine.resolve_external(BUTTON_BG).value == "#1d4ed8"
        assert not engine.clear_override(PRIMARY_TONE)

    def test_clear_all(self, engine, events):
        engine.set_override(PRIMARY_TONE, "#7c3aed")
        engine.set_override(BUTTON_BG, "#000000")
        engine.clear_all()

        assert events[-1] == ChangeEvent.full_reset()
        assert engine.resolve_external(BUTTON_BG).source == ValueSource.COMPUTED

    def test_override_for_unknown_name(self, engine):
        engine.set_override("--custom-thing", "3px")
        resolved = engine.resolve_external("--custom-thing")
        assert resolved.value == "3px"
        assert resolved.source == ValueSource.OVERRIDE
        assert engine.orphaned_overrides() == ["--custom-thing"]

    def test_opacity_override_is_normalized(self, engine):
        engine.set_override("--ts-tokens--opacity-38", 50)

        resolved = engine.resolve_external("--ts-tokens--opacity-38")

        assert resolved.value == 0.5
        assert resolved.source == ValueSource.OVERRIDE
        assert resolved.verified

    def test_stored_overrides_apply_at_startup(self, spec):
        engine = ThemeEngine(spec, backend=InMemoryOverrideBackend({PRIMARY_TONE: "#7c3aed"}))
        assert engine.resolve_external(BUTTON_BG).value == "#7c3aed"


# =============================================================================
# Mode and reload
# =============================================================================


class TestModeSwitch:
    def test_switch_mode(self, engine, events):
        context = engine.switch_mode("dark")

        assert context.mode == ColorMode.DARK
        assert engine.mode == ColorMode.DARK
        assert events == [ChangeEvent.full_reset()]
        assert engine.resolve_external(BUTTON_BG).value == "#3b82f6"
        assert engine.resolve_external(CARD_TEXT).value == "#f3f4f6"

    def test_switch_back_and_forth(self, engine):
        for _ in range(2):
            engine.switch_mode("light")
            assert engine.resolve_external(BUTTON_BG).value == "#1d4ed8"
            engine.switch_mode("dark")
            assert engine.resolve_external(BUTTON_BG).value == "#3b82f6"

    def test_initial_mode_from_config(self, spec):
        config = TokensmithConfig(engine=EngineConfig(default_mode=ColorMode.DARK))
        assert ThemeEngine(spec, config).mode == ColorMode.DARK
        assert ThemeEngine(spec, config, mode="light").mode == ColorMode.LIGHT

    def test_custom_prefix(self, spec):
        engine = ThemeEngine(spec, TokensmithConfig(engine=EngineConfig(prefix="acme")))
        assert engine.resolve_external("--acme-tokens--color-white").value == "#ffffff"


class TestReload:
    def test_reload_swaps_spec_and_notifies(self, engine, events, tokens_doc, theme_doc, components_doc):
        components_doc["ui-kit"]["components"]["button"]["background-color"] = "#ff0000"
        engine.reload(build_spec(tokens_doc, theme_doc, components_doc))

        assert events == [ChangeEvent.full_reset()]
        assert engine.resolve_external(BUTTON_BG).value == "#ff0000"
        assert BUTTON_BG not in engine.dependents_of(PRIMARY_TONE)

    def test_reload_reports_orphaned_overrides(self, engine, tokens_doc, theme_doc, components_doc, caplog):
        engine.set_override("--ts-components--card--padding", "20px")
        del components_doc["ui-kit"]["components"]["card"]

        with caplog.at_level(logging.WARNING, logger="tokensmith.core.engine"):
            engine.reload(build_spec(tokens_doc, theme_doc, components_doc))

        assert engine.orphaned_overrides() == ["--ts-components--card--padding"]
        assert "no longer match" in caplog.text


# =============================================================================
# Construction from config
# =============================================================================


class TestEngineFromConfig:
    def test_builds_and_persists(self, example_dir, tmp_path):
        config = load_config(example_dir / "tokensmith.toml")
        config.overrides.path = tmp_path / "overrides.json"

        engine = engine_from_config(config)
        engine.set_override(PRIMARY_TONE, "#7c3aed")

        stored = json.loads((tmp_path / "overrides.json").read_text(encoding="utf-8"))
        assert stored["spec_version"] == engine.spec.version
        assert stored["overrides"] == {PRIMARY_TONE: "#7c3aed"}

        reopened = engine_from_config(config)
        assert reopened.resolve_external(BUTTON_BG).value == "#7c3aed"

    def test_explicit_paths_and_mode(self, example_dir):
        engine = engine_from_config(
            TokensmithConfig(),
            tokens=example_dir / "tokens.json",
            theme=example_dir / "theme.json",
            components=example_dir / "components.json",
            mode="dark",
            persist=False,
        )
        assert engine.resolve_external(BUTTON_BG).value == "#3b82f6"

    def test_requires_tokens(self):
        with pytest.raises(SpecLoadError):
            engine_from_config(TokensmithConfig(), persist=False)
