# scanner/jsonquery.py
"""
Single-output JSON queries against Kubernetes resource documents.

Resources arrive as plain JSON-like trees (dict / list / scalars). A query
path selects one node of that tree. Two spellings are accepted:

  * dotted:   spec.containers.0.image
  * jq-style: .spec.containers[0].image
              .metadata.labels["app.kubernetes.io/name"]

"." alone selects the whole document.

run_single_output returns (value, found):
  - a missing key, an out-of-range index or a null on the way is "not found"
  - a malformed path, or stepping into the wrong type (key on a list, index
    on a map, anything on a scalar) raises JSONQueryError
"""

import json
from typing import Any, List, Tuple, Union

from scanner.errors import JSONQueryError

Step = Union[str, int]

_SCALARS = (str, int, float, bool)


def parse_path(path: str) -> List[Step]:
    """
    Split a query path into key (str) and index (int) steps.
    """
    text = (path or "").strip()
    if not text:
        raise JSONQueryError("empty query path")
    if text == ".":
        return []

    steps: List[Step] = []
    i = 1 if text.startswith(".") else 0
    expect_segment = True
    while i < len(text):
        ch = text[i]
        if ch == "[":
            end = _closing_bracket(text, i, path)
            steps.append(_parse_bracket(text[i + 1:end], path))
            i = end + 1
            expect_segment = False
            continue
        if ch == ".":
            if expect_segment:
                raise JSONQueryError(f"empty segment in query path: {path}")
            i += 1
            expect_segment = True
            continue
        if ch == "]":
            raise JSONQueryError(f"unbalanced ']' in query path: {path}")
        if not expect_segment:
            raise JSONQueryError(f"missing '.' before '{ch}' in query path: {path}")

        end = i
        while end < len(text) and text[end] not in ".[]":
            end += 1
        segment = text[i:end]
        steps.append(int(segment) if segment.isdigit() else segment)
        i = end
        expect_segment = False

    if expect_segment:
        raise JSONQueryError(f"query path ends with '.': {path}")
    return steps


def _closing_bracket(text: str, start: int, path: str) -> int:
    """
    Index of the "]" closing the "[" at start. Quoted keys may contain "]".
    """
    i = start + 1
    while i < len(text) and text[i] == " ":
        i += 1
    if i < len(text) and text[i] in "\"'":
        close = text.find(text[i], i + 1)
        if close == -1:
            raise JSONQueryError(f"unterminated quoted key in query path: {path}")
        i = close + 1
    end = text.find("]", i)
    if end == -1:
        raise JSONQueryError(f"unbalanced '[' in query path: {path}")
    return end


def _parse_bracket(inner: str, path: str) -> Step:
    inner = inner.strip()
    if not inner:
        raise JSONQueryError(f"empty brackets in query path: {path}")
    if inner[0] in "\"'":
        if len(inner) < 2 or inner[-1] != inner[0]:
            raise JSONQueryError(f"unterminated quoted key in query path: {path}")
        return inner[1:-1]
    try:
        return int(inner)
    except ValueError:
        raise JSONQueryError(f"invalid index '{inner}' in query path: {path}") from None


def _step(node: Any, step: Step, path: str) -> Tuple[Any, bool]:
    if isinstance(node, dict):
        # Numeric dotted segments may still be map keys (e.g. annotations)
        key = str(step)
        if key not in node:
            return None, False
        return node[key], True

    if isinstance(node, list):
        if not isinstance(step, int):
            raise JSONQueryError(f"cannot index array with key '{step}' in query path: {path}")
        if step < -len(node) or step >= len(node):
            return None, False
        return node[step], True

    raise JSONQueryError(
        f"cannot select '{step}' from {type(node).__name__} value in query path: {path}"
    )


def render_value(value: Any) -> Any:
    """
    Keep scalars as they are, flatten maps and arrays to compact JSON text.
    """
    if isinstance(value, _SCALARS):
        return value
    return json.dumps(value, sort_keys=True, separators=(",", ":"))


def run_single_output(path: str, document: Any) -> Tuple[Any, bool]:
    """
    Evaluate path against document and return (value, found).
    """
    node = document
    for step in parse_path(path):
        if node is None:
            return None, False
        node, found = _step(node, step, path)
        if not found:
            return None, False
    if node is None:
        return None, False
    return render_value(node), True
