#!/usr/bin/env python3
"""
Generate a draft-07 JSON Schema from an example JSON instance.

Usage:
  python json_schema_generator.py data.json          # writes data.jsonschema
  python json_schema_generator.py data.json -s       # prints schema to stdout
  cat data.json | python json_schema_generator.py    # reads stdin, prints schema
  python json_schema_generator.py data.json -o schema.json --minify
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence


__version__ = "0.1.0"

LOGGER = logging.getLogger(__name__)

SCHEMA_DRAFT = "http://json-schema.org/draft-07/schema#"
SCHEMA_FILE_SUFFIX = ".jsonschema"
INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


def json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        # Integers that do not fit in a signed 64-bit slot are plain numbers.
        if INT64_MIN <= value <= INT64_MAX:
            return "integer"
        return "number"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    raise TypeError(f"Object of type {type(value).__name__} is not a JSON value")


def _canonical(schema: Any) -> str:
    # json text keeps 1, 1.0 and true apart where Python equality does not.
    return json.dumps(schema, sort_keys=True)


def merge_schemas(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge two element schemas into one representative schema.

    Identical schemas collapse to one. Two schemas declaring the same
    'type' collapse to that type, and when both carry 'properties' those
    are combined shallowly with b overwriting a. Anything else becomes
    {"oneOf": [a, b]}.
    """
    if _canonical(a) == _canonical(b):
        return deepcopy(a)

    if (
        isinstance(a, dict)
        and isinstance(b, dict)
        and "type" in a
        and "type" in b
        and a["type"] == b["type"]
    ):
        out: Dict[str, Any] = {"type": deepcopy(a["type"])}
        if "properties" in a and "properties" in b:
            merged_props: Dict[str, Any] = {}
            for props in (a["properties"], b["properties"]):
                for k, v in props.items():
                    merged_props[k] = deepcopy(v)
            out["properties"] = merged_props
        return out

    return {"oneOf": [deepcopy(a), deepcopy(b)]}


def find_common_schema(schemas: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    """Left-fold schemas with merge_schemas: merge(merge(s0, s1), s2)..."""
    if not schemas:
        return {}

    common = deepcopy(schemas[0])
    for schema in schemas[1:]:
        common = merge_schemas(common, schema)
    return common


def infer_object_schema(value: Dict[str, Any], *, is_root: bool) -> Dict[str, Any]:
    props: Dict[str, Any] = {}
    required: List[str] = []
    ref: Any = None
    has_ref = False

    for k, v in value.items():
        if k == "$ref":
            ref = deepcopy(v)
            has_ref = True
            continue
        sub_schema = infer_schema(v, is_root=False)
        sub_schema.pop("$schema", None)
        props[k] = sub_schema
        required.append(k)

    schema: Dict[str, Any] = {}
    if is_root:
        schema["$schema"] = SCHEMA_DRAFT
    schema["type"] = "object"
    schema["properties"] = props
    schema["required"] = sorted(required)
    if has_ref:
        schema["$ref"] = ref
    return schema


def infer_array_schema(value: Sequence[Any]) -> Dict[str, Any]:
    if not value:
        # Empty array: we don't know item type
        return {"type": "array", "items": {}}

    item_schemas = [infer_schema(item, is_root=False) for item in value]
    return {"type": "array", "items": find_common_schema(item_schemas)}


def infer_schema(value: Any, *, is_root: bool = True) -> Dict[str, Any]:
    """
    Infer the schema of a parsed JSON value.

    is_root marks the outermost call of an inference. Only a root object
    schema carries the "$schema" dialect marker; nested objects, including
    objects inside arrays, never do.
    """
    t = json_type(value)
    if t == "object":
        return infer_object_schema(value, is_root=is_root)
    if t == "array":
        return infer_array_schema(value)
    return {"type": t}


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard constant {name} is not allowed")


def _source_name(input_path: Optional[str]) -> str:
    return input_path if input_path is not None else "stdin"


def load_input_json(parser: argparse.ArgumentParser, input_path: Optional[str]) -> Any:
    source = _source_name(input_path)
    try:
        if input_path is None:
            LOGGER.debug("Reading JSON instance from stdin")
            text = sys.stdin.read()
        else:
            LOGGER.debug("Reading JSON instance from %s", input_path)
            with open(input_path, "r", encoding="utf-8") as f:
                text = f.read()
    except FileNotFoundError:
        parser.error(f"Input file not found: {input_path}")
    except OSError as exc:
        parser.error(f"Cannot read input {source}: {exc.strerror or exc}")
    except UnicodeDecodeError as exc:
        parser.error(f"Cannot read input {source}: {exc}")

    try:
        return json.loads(text, parse_constant=_reject_constant)
    except json.JSONDecodeError as exc:
        parser.error(
            f"Invalid JSON in {source}: {exc.msg} (line {exc.lineno}, column {exc.colno})"
        )
    except ValueError as exc:
        parser.error(f"Invalid JSON in {source}: {exc}")
    except RecursionError:
        parser.error(f"Invalid JSON in {source}: nesting too deep")


def default_output_path(input_path: str) -> Path:
    """<stem>.jsonschema in the current directory, e.g. data/user.json -> user.jsonschema."""
    return Path(Path(input_path).stem + SCHEMA_FILE_SUFFIX)


def resolve_output(args: argparse.Namespace) -> Optional[Path]:
    """Return the file to write, or None when the schema goes to stdout."""
    if args.stdout:
        return None
    if args.output:
        return Path(args.output)
    if args.input is not None:
        return default_output_path(args.input)
    return None


def dump_schema(schema: Dict[str, Any], *, minify: bool = False) -> str:
    if minify:
        return json.dumps(schema, ensure_ascii=False, sort_keys=False, separators=(",", ":"))
    return json.dumps(schema, indent=2, ensure_ascii=False, sort_keys=False)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate a JSON Schema (draft-07) from an example JSON instance"
    )
    parser.add_argument(
        "input",
        nargs="?",
        default=None,
        help="Input JSON file (default: read stdin)",
    )
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Output schema file (default: <input stem>.jsonschema, or stdout when reading stdin)",
    )
    parser.add_argument(
        "-s",
        "--stdout",
        action="store_true",
        help="Print the schema to stdout instead of writing a file",
    )
    parser.add_argument(
        "--minify",
        action="store_true",
        help="Print compact/minified JSON output",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug information to stderr",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    data = load_input_json(parser, args.input)
    try:
        schema = infer_schema(data)
        text = dump_schema(schema, minify=args.minify)
    except RecursionError:
        parser.error(f"Cannot infer schema for {_source_name(args.input)}: nesting too deep")
    LOGGER.debug("Inferred %s schema from %s", json_type(data), _source_name(args.input))

    output_path = resolve_output(args)

    if output_path is None:
        print(text)
        return

    LOGGER.debug("Writing schema to %s", output_path)
    try:
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(text + "\n")
    except OSError as exc:
        parser.error(f"Cannot write output file {output_path}: {exc.strerror or exc}")


if __name__ == "__main__":
    main()
