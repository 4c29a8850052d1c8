from __future__ import annotations

import types

import pytest

from specgen.discovery.loader import discover_module_files, load_module
from specgen.discovery.scanner import scan_module
from specgen.errors import ModuleLoadError
from specgen.markers import feature, given, scenario
from specgen.models import Source, WarningKind


def test_scan_calculator_records(spec_modules):
    result = scan_module(load_module(spec_modules / "calculator_spec.py"))

    assert [f.name for f in result.features] == ["Calculator"]
    assert "As a math idiot" in result.features[0].narrative
    assert [(s.feature, s.title) for s in result.scenarios] == [
        ("Calculator", "Add two numbers"),
        ("Calculator", "Subtract two numbers"),
    ]
    assert result.warnings == []
    assert all(step.source is Source.STATIC for step in result.steps)

    add = [s for s in result.steps if s.scenario == "Add two numbers"]
    # discovery order follows the class body, not the priorities
    assert [s.keyword for s in add] == ["Then", "Given", "And", "When"]
    assert [s.priority for s in add] == [4, 1, 2, 3]
    sequences = [s.sequence for s in result.steps]
    assert sequences == sorted(sequences)
    assert len(set(sequences)) == len(sequences)


def test_stacked_markers_on_one_method(spec_modules):
    result = scan_module(load_module(spec_modules / "calculator_spec.py"))
    subtract = [s for s in result.steps if s.scenario == "Subtract two numbers"]
    assert [(s.keyword, s.template, s.args) for s in subtract] == [
        ("Given", "I have entered {0} into the calculator", (5,)),
        ("When", "I press subtract", ()),
        ("Then", "the result should be {0}", (2,)),
    ]


def test_scan_is_repeatable(spec_modules):
    module = load_module(spec_modules / "calculator_spec.py")
    assert scan_module(module) == scan_module(module)


def test_empty_module_yields_nothing(spec_modules):
    result = scan_module(load_module(spec_modules / "empty_spec.py"))
    assert result.features == []
    assert result.scenarios == []
    assert result.steps == []
    assert result.warnings == []


def test_malformed_markers_are_skipped_with_warnings(spec_modules):
    result = scan_module(load_module(spec_modules / "messy_spec.py"))

    assert [f.name for f in result.features] == ["Shopping"]
    assert [s.title for s in result.scenarios] == ["Checkout", "Lonely"]
    assert all(w.kind is WarningKind.DISCOVERY for w in result.warnings)
    messages = " ".join(w.message for w in result.warnings)
    assert "NamelessFeature" in messages
    assert "Untitled" in messages
    assert "'Whenever'" in messages
    assert len(result.warnings) == 3
    assert not any(s.template == "never rendered" for s in result.steps)


def test_data_driven_rows_become_steps(spec_modules):
    result = scan_module(load_module(spec_modules / "messy_spec.py"))
    lines = [s for s in result.steps if s.template == "line {0} costs {1}"]
    assert [s.args for s in lines] == [(1, "9.99"), (2, "0.50")]
    assert all(s.keyword == "Then" and s.priority == 3 for s in lines)


def test_unresolved_parents_are_left_for_the_builder(spec_modules):
    result = scan_module(load_module(spec_modules / "messy_spec.py"))
    lonely = [s for s in result.scenarios if s.title == "Lonely"][0]
    assert lonely.feature is None
    orphan = [s for s in result.steps if s.template == "this step has no scenario"][0]
    assert orphan.feature == "Shopping"
    assert orphan.scenario is None


def test_scan_in_memory_module_ignores_imported_classes():
    module = types.ModuleType("inline_specs")

    @feature("Inline")
    class InlineFeature:
        pass

    @scenario("Imported elsewhere")
    class Foreign(InlineFeature):
        @given("not part of this module")
        def test_x(self):
            pass

    InlineFeature.__module__ = "inline_specs"
    module.InlineFeature = InlineFeature
    module.Foreign = Foreign

    result = scan_module(module)
    assert [f.name for f in result.features] == ["Inline"]
    assert result.scenarios == []
    assert result.steps == []


def test_invalid_priority_is_a_discovery_warning():
    module = types.ModuleType("bad_priority_specs")

    @feature("Priorities")
    class PriorityFeature:
        pass

    @scenario("Strings are not priorities")
    class Scenario(PriorityFeature):
        @given("a step", priority="first")
        def test_step(self):
            pass

        @given("another step", priority=2)
        def test_other(self):
            pass

    for cls in (PriorityFeature, Scenario):
        cls.__module__ = module.__name__
        setattr(module, cls.__name__, cls)

    result = scan_module(module)
    assert [s.template for s in result.steps] == ["another step"]
    assert len(result.warnings) == 1
    assert "'first'" in result.warnings[0].message


def test_load_module_failures(spec_modules, tmp_path):
    with pytest.raises(ModuleLoadError, match="RuntimeError"):
        load_module(spec_modules / "broken_spec.py")
    with pytest.raises(ModuleLoadError, match="file not found"):
        load_module(tmp_path / "missing_spec.py")
    with pytest.raises(ModuleLoadError):
        load_module("specgen_no_such_module_anywhere")


def test_load_module_by_dotted_name_and_object():
    module = load_module("specgen.markers")
    assert module.__name__ == "specgen.markers"
    assert load_module(module) is module


def test_discover_module_files_honours_globs(spec_modules):
    files = discover_module_files(spec_modules, ["**/*_spec.py"], ["**/broken_*"])
    assert [f.name for f in files] == ["calculator_spec.py", "empty_spec.py", "messy_spec.py"]


def test_rows_of_a_data_driven_marker_share_a_declaration(spec_modules):
    result = scan_module(load_module(spec_modules / "messy_spec.py"))
    lines = [s for s in result.steps if s.template == "line {0} costs {1}"]
    others = [s for s in result.steps if s.template != "line {0} costs {1}"]
    assert lines[0].declaration == lines[1].declaration
    assert lines[0].sequence != lines[1].sequence
    assert lines[0].declaration not in {s.declaration for s in others}


def test_feature_inherited_from_another_module_is_recorded(tmp_path, monkeypatch):
    (tmp_path / "shared_calculator_feature.py").write_text(
        "from specgen.markers import feature\n"
        "\n"
        "@feature('Calculator', 'Shared narrative')\n"
        "class CalculatorFeature:\n"
        "    pass\n",
        encoding="utf-8",
    )
    spec_file = tmp_path / "inherited_add_spec.py"
    spec_file.write_text(
        "from specgen.markers import given, scenario\n"
        "from shared_calculator_feature import CalculatorFeature\n"
        "\n"
        "@scenario('Add')\n"
        "class Add(CalculatorFeature):\n"
        "    @given('I have entered {0}', 1)\n"
        "    def test_enter(self):\n"
        "        pass\n",
        encoding="utf-8",
    )
    monkeypatch.syspath_prepend(str(tmp_path))

    result = scan_module(load_module(spec_file))

    assert [(f.name, f.narrative) for f in result.features] == [("Calculator", "Shared narrative")]
    assert [(s.feature, s.title) for s in result.scenarios] == [("Calculator", "Add")]
    assert result.warnings == []


def test_edited_file_is_loaded_again(tmp_path):
    spec_file = tmp_path / "edited_spec.py"
    spec_file.write_text("VALUE = 'old'\n", encoding="utf-8")
    first = load_module(spec_file)
    assert first.VALUE == "old"
    assert load_module(spec_file) is first

    spec_file.write_text("VALUE = 'a newer value'\n", encoding="utf-8")
    second = load_module(spec_file)
    assert second.VALUE == "a newer value"
    assert load_module(spec_file) is second
