from __future__ import annotations

import ast
import os

import pytest

HERE = os.path.dirname(__file__)
SOURCES = [
    os.path.join(HERE, "..", "noxfile.py"),
    *(
        os.path.join(root, name)
        for root, _, names in os.walk(os.path.join(HERE, "..", "src", "cascade"))
        for name in names
        if name.endswith(".py")
    ),
]


@pytest.mark.unit
@pytest.mark.parametrize("path", SOURCES, ids=os.path.basename)
def test_future_imports_are_annotations_only(path: str) -> None:
    with open(path, encoding="utf-8") as f:
        tree = ast.parse(f.read(), filename=path)

    features = {
        alias.name
        for node in tree.body
        if isinstance(node, ast.ImportFrom) and node.module == "__future__"
        for alias in node.names
    }

    assert features <= {"annotations"}
