import ast
from pathlib import Path

SCRIPTS = Path(__file__).resolve().parent.parent / "scripts"


def test_smoke_script_is_not_collected_by_pytest():
    path = SCRIPTS / "smoke-test.py"
    tree = ast.parse(path.read_text(encoding="utf-8"))
    functions = {node.name for node in tree.body if isinstance(node, ast.FunctionDef)}

    assert not path.name.startswith("test_") and not path.stem.endswith("_test")
    assert {"check_health", "run_signup_flow", "main"} <= functions
    assert not [name for name in functions if name.startswith("test")]
