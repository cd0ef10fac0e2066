import json
import textwrap

import pytest

from polyflow.errors import LoaderError
from polyflow.loader import (
    discover_workflows,
    load_workflow,
    resolve_workflow_path,
    workflow_from_dict,
    workflow_to_dict,
)
from polyflow.model import WorkflowDefinition


def write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_load_json_workflow(tmp_path):
    path = write_json(tmp_path / "etl.json", {
        "name": "etl",
        "description": "demo",
        "steps": {
            "extract": {"language": "python", "code": "def run(): return {}"},
            "load": {"language": "bash", "code": "run() { :; }", "depends_on": ["extract"]},
        },
    })

    workflow = load_workflow(path)

    assert workflow.name == "etl"
    assert workflow.description == "demo"
    assert workflow.step_names() == ["extract", "load"]
    assert workflow.get("load").language == "bash"
    assert workflow.get("load").depends_on == ("extract",)


def test_language_defaults_to_lua_and_func_alias():
    workflow = workflow_from_dict({
        "name": "w",
        "steps": {
            "plain": {"code": "function run() return {} end"},
            "mod": {"language": "wasm", "module": "m.wasm", "func": "main"},
            "mod2": {"language": "wasm", "module": "m.wasm", "function": "other"},
        },
    })

    assert workflow.get("plain").language == "lua"
    assert workflow.get("mod").function == "main"
    assert workflow.get("mod2").function == "other"


def test_steps_as_list_and_default_name():
    workflow = workflow_from_dict(
        {"steps": [{"name": "a", "code": "x"}, {"name": "b", "code": "y", "depends_on": "a"}]},
        default_name="from_file",
    )

    assert workflow.name == "from_file"
    assert workflow.get("b").depends_on == ("a",)


@pytest.mark.parametrize(
    "data",
    [
        [],
        {"name": "w"},
        {"name": "w", "steps": 3},
        {"name": "w", "steps": [{"code": "x"}]},
        {"name": "w", "steps": {"a": "not an object"}},
        {"name": "w", "steps": {"a": {"depends_on": [1]}}},
        {"name": "w", "steps": {"a": {"code": 5}}},
        {"steps": {"a": {"code": "x"}}},
    ],
)
def test_invalid_layouts_raise_loader_error(data):
    with pytest.raises(LoaderError):
        workflow_from_dict(data)


def test_duplicate_names_in_list_become_loader_error():
    with pytest.raises(LoaderError) as exc:
        workflow_from_dict({"name": "w", "steps": [{"name": "a"}, {"name": "a"}]})
    assert "Duplicate" in exc.value.message


def test_dict_layout_roundtrip():
    data = {
        "name": "w",
        "description": "",
        "steps": {
            "a": {"language": "python", "depends_on": [], "code": "x"},
            "b": {"language": "wasm", "depends_on": ["a"], "module": "m.wasm", "func": "main"},
        },
    }
    assert workflow_to_dict(workflow_from_dict(data)) == data


def test_invalid_json_file(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(LoaderError) as exc:
        load_workflow(path)
    assert "Invalid JSON" in exc.value.message


def test_load_python_workflow_function(tmp_path):
    path = tmp_path / "pipeline.py"
    path.write_text(textwrap.dedent('''
        from polyflow import python, wf

        def workflow():
            return wf("pipeline", python("a", "def run(): return {}"), description="py")
    '''), encoding="utf-8")

    workflow = load_workflow(path)

    assert isinstance(workflow, WorkflowDefinition)
    assert workflow.name == "pipeline"
    assert workflow.description == "py"


def test_load_python_workflow_constant_dict(tmp_path):
    path = tmp_path / "consts.py"
    path.write_text('WORKFLOW = {"steps": {"a": {"language": "python", "code": "x"}}}\n', encoding="utf-8")

    workflow = load_workflow(path)

    assert workflow.name == "consts"
    assert workflow.get("a").language == "python"


def test_python_file_without_workflow(tmp_path):
    path = tmp_path / "empty.py"
    path.write_text("X = 1\n", encoding="utf-8")

    with pytest.raises(LoaderError):
        load_workflow(path)


def test_missing_and_unsupported_files(tmp_path):
    with pytest.raises(LoaderError):
        load_workflow(tmp_path / "nope.json")

    other = tmp_path / "workflow.yaml"
    other.write_text("name: w\n", encoding="utf-8")
    with pytest.raises(LoaderError) as exc:
        load_workflow(other)
    assert ".py or .json" in exc.value.message


def test_discover_workflows_sorted(tmp_path):
    for name in ("b.json", "a.py", "notes.txt"):
        (tmp_path / name).write_text("{}", encoding="utf-8")
    (tmp_path / "examples").mkdir()

    assert [p.name for p in discover_workflows(tmp_path)] == ["a.py", "b.json"]
    assert discover_workflows(tmp_path / "missing") == []


def test_resolve_workflow_path(tmp_path):
    (tmp_path / "top.json").write_text("{}", encoding="utf-8")
    (tmp_path / "templates").mkdir()
    (tmp_path / "templates" / "nested.py").write_text("", encoding="utf-8")

    assert resolve_workflow_path("top", tmp_path) == tmp_path / "top.json"
    assert resolve_workflow_path("top.json", tmp_path) == tmp_path / "top.json"
    assert resolve_workflow_path("nested", tmp_path) == tmp_path / "templates" / "nested.py"
    assert resolve_workflow_path(str(tmp_path / "top.json"), "elsewhere") == tmp_path / "top.json"

    with pytest.raises(LoaderError):
        resolve_workflow_path("ghost", tmp_path)


DUPLICATE_STEPS = '''
from polyflow import python, wf

def workflow():
    return wf("dup", python("a", "def run(): return {}"), python("a", "def run(): return {}"))
'''


def test_python_workflow_with_duplicate_steps(tmp_path):
    path = tmp_path / "dup.py"
    path.write_text(DUPLICATE_STEPS, encoding="utf-8")

    with pytest.raises(LoaderError) as exc:
        load_workflow(path)
    assert "Duplicate step name: 'a'" in exc.value.message


@pytest.mark.parametrize(
    "source, expected",
    [
        ("def workflow(:\n", "SyntaxError"),
        ("import polyflow_no_such_module\n", "ModuleNotFoundError"),
        ("def workflow():\n    raise RuntimeError('no')\n", "RuntimeError: no"),
    ],
)
def test_python_workflow_errors_become_loader_errors(tmp_path, source, expected):
    path = tmp_path / "bad.py"
    path.write_text(source, encoding="utf-8")

    with pytest.raises(LoaderError) as exc:
        load_workflow(path)
    assert expected in exc.value.message
