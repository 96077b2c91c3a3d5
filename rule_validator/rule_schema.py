"""
JSON Schema for rule files.

Rule files are YAML or JSON documents whose top level is a rules mapping:

    bank:
      type: integer
      enum_eq: [1, 2]
    address:
      type: hash
      keys:
        city: {}
        postcode: {type: integer, min_length: 6}

Documents are checked against RULES_FILE_SCHEMA before any callback or
instanceof import path is resolved.
"""

from typing import Any

from jsonschema import Draft7Validator
from jsonschema.exceptions import best_match

from .errors import RuleFileError

IMPORT_PATH_PATTERN = r"^[A-Za-z_][\w.]*:[A-Za-z_][\w.]*$"

RULES_FILE_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "definitions": {
        "rules": {
            "type": "object",
            "additionalProperties": {"$ref": "#/definitions/rule"},
        },
        "rule": {
            "type": ["object", "null"],
            "properties": {
                "type": {"type": "string"},
                "required": {"type": "boolean"},
                "allow_empty": {"type": "boolean"},
                "allow_tags": {"type": "boolean"},
                "regexp": {"type": "string"},
                "regexp_flags": {"type": "array", "items": {"type": "string"}},
                "eq": {},
                "same": {},
                "enum_eq": {"type": "array"},
                "enum_same": {"type": "array"},
                "callback": {"type": "string", "pattern": IMPORT_PATH_PATTERN},
                "min_length": {"type": "integer", "minimum": 0},
                "allow_negative": {"type": "boolean"},
                "keys": {"$ref": "#/definitions/rules"},
                "element": {
                    "anyOf": [
                        {"$ref": "#/definitions/rule"},
                        {"$ref": "#/definitions/rules"},
                    ]
                },
                "instanceof": {"type": "string"},
                "error_message": {"type": "string"},
            },
            "additionalProperties": False,
        },
    },
    "$ref": "#/definitions/rules",
}

_validator = Draft7Validator(RULES_FILE_SCHEMA)


def check_rules_document(document: Any, source: str = "<rules>") -> None:
    """
    Check a parsed rule file against RULES_FILE_SCHEMA.

    Args:
        document: Parsed YAML/JSON document
        source: File name or URI, used in the error message

    Raises:
        RuleFileError: If the document does not describe a rules mapping
    """
    error = best_match(_validator.iter_errors(document))
    if error is None:
        return

    error_path = " -> ".join(str(p) for p in error.absolute_path) if error.absolute_path else "root"
    raise RuleFileError(f"Invalid rule file {source} at {error_path}: {error.message}")
