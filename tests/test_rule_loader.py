"""
Tests for rule files

Loading YAML and JSON rule files, schema checks, import path resolution and
remote fetching with caching.
"""
import json
import re
import textwrap

import pytest
import requests

from rule_validator import ErrorKind, RuleFileError, ValidationError, Validator
from rule_validator.rule_fetcher import RuleFetcher
from rule_validator.rule_loader import RuleLoader, import_string
from rule_validator.rule_schema import check_rules_document


@pytest.fixture
def fetcher(tmp_path):
    """Create a RuleFetcher caching under a temporary directory."""
    return RuleFetcher(cache_dir=str(tmp_path / "cache"), timeout=2)


@pytest.fixture
def loader(fetcher):
    """Create a RuleLoader."""
    return RuleLoader(fetcher)


@pytest.fixture
def callbacks_module(tmp_path, monkeypatch):
    """Put an importable module of callbacks and classes on sys.path."""
    module_dir = tmp_path / "modules"
    module_dir.mkdir()
    (module_dir / "form_checks.py").write_text(textwrap.dedent("""
        def is_even(value, rule):
            return int(value) % 2 == 0


        def has_two_items(value, rule):
            return len(value) == 2


        class Money:
            def __init__(self, amount):
                self.amount = amount


        NOT_CALLABLE = 42
    """))
    monkeypatch.syspath_prepend(str(module_dir))
    return "form_checks"


def write(path, text):
    path.write_text(textwrap.dedent(text))
    return path


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, text, status_code=200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error")


class TestYamlRules:
    """Test loading YAML rule files."""

    def test_load_bank_rules(self, loader, tmp_path):
        """Test a flat YAML rule file."""
        path = write(tmp_path / "bank.yaml", """
            bank:
              type: integer
              enum_eq: [1, 2]
            card_number: {}
            province:
              required: true
        """)

        rules = loader.load(str(path))

        assert list(rules) == ["bank", "card_number", "province"]
        assert rules["bank"]["enum_eq"] == [1, 2]
        assert Validator().validate({"bank": 2, "card_number": "1", "province": "BJ"}, rules)

    def test_null_rule(self, loader, tmp_path):
        """Test that a key with no body loads as an empty rule."""
        path = write(tmp_path / "rules.yaml", """
            name:
        """)
        assert loader.load(str(path)) == {"name": {}}

    def test_regexp_compiled_with_flags(self, loader, tmp_path):
        """Test that regexp strings are compiled with regexp_flags."""
        path = write(tmp_path / "rules.yaml", """
            code:
              regexp: '^[a-z]{3}$'
              regexp_flags: [IGNORECASE]
        """)

        rules = loader.load(str(path))

        assert isinstance(rules["code"]["regexp"], re.Pattern)
        assert rules["code"]["regexp"].flags & re.IGNORECASE
        assert Validator().validate({"code": "ABC"}, rules) is True

    def test_nested_keys_and_element(self, loader, tmp_path):
        """Test that nested rules are resolved too."""
        path = write(tmp_path / "order.yaml", """
            order:
              type: hash
              keys:
                id:
                  type: uuid
                lines:
                  type: array
                  element:
                    sku:
                      regexp: '^[A-Z]+\\d+$'
                    qty:
                      type: integer
                      allow_negative: false
                tags:
                  type: array
                  required: false
                  element:
                    type: string
                    min_length: 2
        """)

        rules = loader.load(str(path))
        lines = rules["order"]["keys"]["lines"]["element"]
        assert isinstance(lines["sku"]["regexp"], re.Pattern)

        values = {
            "order": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "lines": [{"sku": "AB1", "qty": 1}, {"sku": "CD2", "qty": -1}],
            }
        }
        with pytest.raises(ValidationError) as exc_info:
            Validator().validate(values, rules)

        assert exc_info.value.kind == ErrorKind.NEGATIVE_NOT_ALLOWED
        assert exc_info.value.path == ("order", "lines", 1, "qty")

    def test_callback_and_instanceof_import_paths(self, loader, tmp_path, callbacks_module):
        """Test that callback and instanceof import paths are resolved."""
        path = write(tmp_path / "rules.yaml", f"""
            count:
              callback: '{callbacks_module}:is_even'
            price:
              type: object
              instanceof: '{callbacks_module}:Money'
        """)

        rules = loader.load(str(path))

        import form_checks
        assert rules["count"]["callback"] is form_checks.is_even
        assert rules["price"]["instanceof"] is form_checks.Money
        assert Validator().validate({"count": "4", "price": form_checks.Money(5)}, rules)

        with pytest.raises(ValidationError) as exc_info:
            Validator().validate({"count": "3", "price": form_checks.Money(5)}, rules)
        assert exc_info.value.kind == ErrorKind.CALLBACK_FAILED

    def test_loaded_rules_are_cached(self, loader, tmp_path):
        """Test that a second load returns the cached mapping."""
        path = write(tmp_path / "rules.yaml", "name: {}\n")

        first = loader.load(str(path))
        path.write_text("other: {}\n")

        assert loader.load(str(path)) is first

        loader.clear_cache()
        assert list(loader.load(str(path))) == ["other"]

    def test_file_uri(self, loader, tmp_path):
        """Test loading through a file:// URI."""
        path = write(tmp_path / "rules.yaml", "name: {}\n")
        assert loader.load(path.as_uri()) == {"name": {}}


class TestJsonRules:
    """Test loading JSON rule files."""

    def test_load_json(self, loader, tmp_path):
        """Test that .json files are parsed as JSON."""
        path = tmp_path / "rules.json"
        path.write_text(json.dumps({
            "doc": {"type": "json", "keys": {"a": {"required": True}}},
        }))

        rules = loader.load(str(path))

        assert Validator().validate({"doc": '{"a": 1}'}, rules) is True

    def test_malformed_json(self, loader, tmp_path):
        """Test that a malformed JSON file raises RuleFileError."""
        path = tmp_path / "rules.json"
        path.write_text("{name: {}}")

        with pytest.raises(RuleFileError, match="Failed to parse"):
            loader.load(str(path))


class TestRuleFileErrors:
    """Test rule files that can't be used."""

    def test_missing_file(self, loader, tmp_path):
        """Test that a missing file raises RuleFileError."""
        with pytest.raises(RuleFileError, match="Failed to read"):
            loader.load(str(tmp_path / "nope.yaml"))

    def test_bad_yaml(self, loader, tmp_path):
        """Test that invalid YAML raises RuleFileError."""
        path = write(tmp_path / "rules.yaml", "name: [unclosed\n")
        with pytest.raises(RuleFileError, match="Failed to parse"):
            loader.load(str(path))

    def test_unknown_field(self, loader, tmp_path):
        """Test that a misspelt rule field is rejected by the schema."""
        path = write(tmp_path / "rules.yaml", """
            name:
              requried: true
        """)
        with pytest.raises(RuleFileError, match="name"):
            loader.load(str(path))

    def test_wrong_field_type(self, loader, tmp_path):
        """Test that a wrongly typed field is rejected by the schema."""
        path = write(tmp_path / "rules.yaml", """
            age:
              min_length: many
        """)
        with pytest.raises(RuleFileError, match="age"):
            loader.load(str(path))

    def test_top_level_must_be_mapping(self, loader, tmp_path):
        """Test that a list document is rejected."""
        path = write(tmp_path / "rules.yaml", "- name\n- age\n")
        with pytest.raises(RuleFileError, match="root"):
            loader.load(str(path))

    def test_callback_without_module(self, loader, tmp_path):
        """Test that a callback that isn't an import path is rejected."""
        path = write(tmp_path / "rules.yaml", """
            name:
              callback: is_even
        """)
        with pytest.raises(RuleFileError):
            loader.load(str(path))

    def test_callback_not_callable(self, loader, tmp_path, callbacks_module):
        """Test that a non-callable callback target is rejected."""
        path = write(tmp_path / "rules.yaml", f"""
            name:
              callback: '{callbacks_module}:NOT_CALLABLE'
        """)
        with pytest.raises(RuleFileError, match="not callable"):
            loader.load(str(path))

    def test_bad_regexp(self, loader, tmp_path):
        """Test that an invalid pattern is rejected."""
        path = write(tmp_path / "rules.yaml", """
            name:
              regexp: '(unclosed'
        """)
        with pytest.raises(RuleFileError, match="Invalid regexp"):
            loader.load(str(path))

    def test_unknown_regexp_flag(self, loader, tmp_path):
        """Test that an unknown flag name is rejected."""
        path = write(tmp_path / "rules.yaml", """
            name:
              regexp: 'a'
              regexp_flags: [SHOUTY]
        """)
        with pytest.raises(RuleFileError, match="Unknown regexp flag"):
            loader.load(str(path))

    def test_unsupported_scheme(self, loader):
        """Test that unknown URI schemes are rejected."""
        with pytest.raises(RuleFileError, match="Unsupported URI scheme"):
            loader.load("ftp://example.com/rules.yaml")


class TestRemoteRules:
    """Test fetching rule files over http(s)."""

    def test_fetch_and_cache(self, loader, fetcher, monkeypatch):
        """Test that remote files are fetched once and cached on disk."""
        calls = []

        def fake_get(url, timeout):
            calls.append((url, timeout))
            return FakeResponse("name: {}\n")

        monkeypatch.setattr(requests, "get", fake_get)
        uri = "https://rules.example.com/forms/signup.yaml"

        assert loader.load(uri) == {"name": {}}
        assert fetcher.cache_path(uri).exists()

        loader.clear_cache()
        assert loader.load(uri) == {"name": {}}
        assert calls == [(uri, 2)]

    def test_http_error(self, loader, monkeypatch):
        """Test that HTTP errors raise RuleFileError."""
        monkeypatch.setattr(requests, "get", lambda url, timeout: FakeResponse("", 404))

        with pytest.raises(RuleFileError, match="Failed to fetch"):
            loader.load("https://rules.example.com/missing.yaml")

    def test_timeout(self, loader, monkeypatch):
        """Test that timeouts raise RuleFileError."""
        def fake_get(url, timeout):
            raise requests.exceptions.Timeout()

        monkeypatch.setattr(requests, "get", fake_get)

        with pytest.raises(RuleFileError, match="Timed out"):
            loader.load("https://rules.example.com/slow.yaml")

    def test_remote_json_by_suffix(self, loader, monkeypatch):
        """Test that remote .json files are parsed as JSON."""
        monkeypatch.setattr(
            requests, "get",
            lambda url, timeout: FakeResponse('{"age": {"type": "integer"}}'),
        )
        rules = loader.load("https://rules.example.com/age.json?rev=2")
        assert rules["age"]["type"] == "integer"

    def test_clear_cache(self, fetcher, monkeypatch):
        """Test that clear_cache removes cached files."""
        monkeypatch.setattr(requests, "get", lambda url, timeout: FakeResponse("a: {}\n"))
        uri = "https://rules.example.com/a.yaml"
        fetcher.fetch(uri)

        fetcher.clear_cache()

        assert not fetcher.cache_path(uri).exists()


class TestImportString:
    """Test import path resolution."""

    def test_resolves_attribute_path(self):
        """Test module:attr.attr paths."""
        import os.path
        assert import_string("os:path.join") is os.path.join

    @pytest.mark.parametrize("import_path", [
        "no_such_module_xyz:thing",
        "os:no_such_attribute",
        "os.path",
        ":join",
    ])
    def test_bad_paths(self, import_path):
        """Test paths that can't be resolved."""
        with pytest.raises(RuleFileError):
            import_string(import_path)

    def test_inline_callback_import_path(self, callbacks_module):
        """Test that an inline rule can name its callback by import path."""
        rules = {"count": {"callback": f"{callbacks_module}:is_even"}}

        assert Validator().validate({"count": "4"}, rules) is True
        with pytest.raises(ValidationError) as exc_info:
            Validator().validate({"count": "3"}, rules)
        assert exc_info.value.kind == ErrorKind.CALLBACK_FAILED

    def test_inline_container_callback_import_path(self, callbacks_module):
        """Test an import path callback on an array rule."""
        rules = {"ids": {
            "type": "array",
            "element": {"type": "integer"},
            "callback": f"{callbacks_module}:has_two_items",
        }}

        assert Validator().validate({"ids": [1, 2]}, rules) is True
        with pytest.raises(ValidationError) as exc_info:
            Validator().validate({"ids": [1, 2, 3]}, rules)
        assert exc_info.value.kind == ErrorKind.CALLBACK_FAILED


class TestRulesSchema:
    """Test the rule file JSON schema directly."""

    def test_valid_document(self):
        """Test a document using every field."""
        check_rules_document({
            "a": {
                "type": "integer",
                "required": False,
                "allow_empty": True,
                "allow_tags": False,
                "regexp": "^a$",
                "regexp_flags": ["IGNORECASE"],
                "eq": 1,
                "same": 1,
                "enum_eq": [1],
                "enum_same": [1],
                "callback": "pkg.mod:func",
                "min_length": 1,
                "allow_negative": True,
                "instanceof": "Decimal",
                "error_message": "bad a",
            },
            "b": {"type": "array", "element": {"type": "integer"}},
            "c": {"type": "array", "element": {"x": {}, "y": None}},
            "d": {"type": "hash", "keys": {"e": {"type": "url"}}},
            "f": None,
        })

    def test_nested_error_path(self):
        """Test that nested schema errors name the nested key."""
        with pytest.raises(RuleFileError, match="d -> keys -> e"):
            check_rules_document({"d": {"type": "hash", "keys": {"e": {"required": "yes"}}}})
