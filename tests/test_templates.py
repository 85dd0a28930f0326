"""
Tests for the template resolver and variable store.
"""

from stepwright.core.engine.templates import (
    NOT_SET,
    placeholders,
    render_value,
    resolve,
    unresolved,
)
from stepwright.core.engine.variables import MASK, VariableStore, is_sensitive_key


class TestRenderValue:
    def test_command_context(self):
        assert render_value(None) == ""
        assert render_value(True) == "true"
        assert render_value(False) == "false"
        assert render_value(["a", "b"]) == "a,b"
        assert render_value(8080) == "8080"

    def test_display_context(self):
        assert render_value(None, "display") == NOT_SET
        assert render_value("", "display") == NOT_SET
        assert render_value([], "display") == NOT_SET
        assert render_value(True, "display") == "Yes"
        assert render_value(False, "display") == "No"
        assert render_value(["a", "b"], "display") == "a, b"

    def test_integral_float_renders_as_int(self):
        assert render_value(3.0) == "3"
        assert render_value(2.5) == "2.5"


class TestResolve:
    def test_substitutes_placeholders(self):
        out = resolve("ssh {{user}}@{{ host }}", {"user": "root", "host": "box"})
        assert out == "ssh root@box"

    def test_missing_key_is_empty_in_commands(self):
        assert resolve("echo [{{nope}}]", {}) == "echo []"

    def test_missing_key_is_not_set_in_display(self):
        assert resolve("Domain: {{domain}}", {}, "display") == f"Domain: {NOT_SET}"

    def test_no_placeholders_returns_input_unchanged(self):
        text = "apt-get update && echo {not a placeholder}"
        assert resolve(text, {"x": 1}) is text

    def test_deterministic(self):
        variables = {"a": ["x", "y"], "b": True}
        t = "{{a}} {{b}} {{c}}"
        assert resolve(t, variables) == resolve(t, variables) == "x,y true "

    def test_placeholders_and_unresolved(self):
        t = "{{a}} {{b}} {{a}}"
        assert placeholders(t) == ["a", "b", "a"]
        assert unresolved(t, {"a": 1}) == ["b"]


class TestVariableStore:
    def test_later_writes_overwrite(self):
        store = VariableStore({"a": 1})
        store.set("a", 2)
        assert store.get("a") == 2
        assert len(store) == 1

    def test_sensitive_keys_are_masked(self):
        store = VariableStore({"dbPassword": "hunter2", "user": "admin"})
        store.set("captured", "secret-value", sensitive=True)
        masked = store.masked()
        assert masked["dbPassword"] == MASK
        assert masked["captured"] == MASK
        assert masked["user"] == "admin"
        assert store.snapshot()["dbPassword"] == "hunter2"

    def test_public_items_skip_sensitive(self):
        store = VariableStore({"apiKey": "k", "region": "eu"})
        assert store.public_items() == [("region", "eu")]

    def test_display_value_joins_lists(self):
        store = VariableStore({"features": ["a", "b"]})
        assert store.display_value("features") == "a, b"

    def test_sensitive_key_pattern(self):
        assert is_sensitive_key("ADMIN_PASSWORD")
        assert is_sensitive_key("github_token")
        assert is_sensitive_key("api-key")
        assert not is_sensitive_key("hostname")

    def test_redact_masks_substituted_secrets(self):
        store = VariableStore({"db_password": "hunter2", "user": "admin", "empty_token": ""})
        store.set("cert", "abc", sensitive=True)
        assert store.redact("mysql -u admin -phunter2 --cert abc") == f"mysql -u admin -p{MASK} --cert {MASK}"
        assert store.redact("nothing secret here") == "nothing secret here"

    def test_redact_prefers_longest_secret(self):
        store = VariableStore({"token": "abc", "api_key": "abcdef"})
        assert store.redact("key=abcdef") == f"key={MASK}"
