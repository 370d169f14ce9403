import shutil
import subprocess
from pathlib import Path

import pytest

from openapi_authz.errors import InvalidNamespaceError
from openapi_authz.generator.code import generate, get_generator
from openapi_authz.generator.golang import GoCodeGenerator, alignment_sections, go_quote
from openapi_authz.parser.base import AuthPolicy, Config, RouteKey

FIXTURES = Path(__file__).parent / "fixtures"

ENTRIES = [
    (RouteKey(method="GET", path="/public"), AuthPolicy.public()),
    (RouteKey(method="GET", path="/user"), AuthPolicy(require_auth=True)),
    (RouteKey(method="DELETE", path="/admin"), AuthPolicy(require_auth=True, roles=["admin"])),
    (RouteKey(method="POST", path="/scoped"), AuthPolicy(require_auth=True, scopes=["vegetable:write"])),
]


def _config(entries) -> Config:
    return Config(policies=dict(entries))


class TestGoGenerator:
    def test_matches_golden(self):
        got = generate("httproutes", _config(ENTRIES))
        want = (FIXTURES / "authpolicy.golden.go").read_text(encoding="utf-8")
        assert got == want

    def test_default_target_is_go(self):
        assert isinstance(get_generator("go"), GoCodeGenerator)
        assert generate("httproutes", _config(ENTRIES)) == generate("httproutes", _config(ENTRIES), target="go")

    def test_deterministic_across_insertion_order(self):
        forward = generate("httproutes", _config(ENTRIES))
        backward = generate("httproutes", _config(reversed(ENTRIES)))
        assert forward == backward

    def test_entries_sorted_by_method_then_path(self):
        code = generate("httproutes", _config(ENTRIES))
        order = [code.index(f'{{Method: "{k.method}", Path: "{k.path}"}}') for k, _ in ENTRIES]
        # DELETE /admin, GET /public, GET /user, POST /scoped
        assert order[2] < order[0] < order[1] < order[3]

    def test_package_clause_uses_namespace(self):
        code = generate("authz", _config(ENTRIES))
        assert "\npackage authz\n" in code

    def test_empty_lists_omitted(self):
        code = generate("httproutes", _config(ENTRIES))
        assert "Roles: []string{}" not in code
        assert "Scopes: []string{}" not in code

    def test_roles_and_scopes_together(self):
        cfg = _config([(RouteKey(method="PUT", path="/x"), AuthPolicy(require_auth=True, roles=["a", "b"], scopes=["c"]))])
        code = generate("httproutes", cfg)
        assert '{RequireAuth: true, Roles: []string{"a", "b"}, Scopes: []string{"c"}},' in code

    def test_empty_config(self):
        code = generate("httproutes", Config(policies={}))
        assert code.endswith("var AuthPolicies = map[RouteKey]AuthPolicy{}\n")

    def test_single_trailing_newline(self):
        code = generate("httproutes", _config(ENTRIES))
        assert code.endswith("}\n")
        assert not code.endswith("\n\n")

    def test_strings_escaped(self):
        cfg = _config([(RouteKey(method="GET", path='/a"b\\c'), AuthPolicy(require_auth=True, scopes=["x\ny"]))])
        code = generate("httproutes", cfg)
        assert r'Path: "/a\"b\\c"' in code
        assert r'[]string{"x\ny"}' in code


class TestAlignmentSections:
    def test_small_keys_share_one_section(self):
        assert alignment_sections([27, 28, 29, 40]) == [[0, 1, 2, 3]]

    def test_moderately_longer_key_stays_aligned(self):
        assert alignment_sections([27, 45]) == [[0, 1]]

    def test_long_key_breaks_alignment(self):
        assert alignment_sections([27, 27, 116, 28]) == [[0, 1], [2], [3]]

    def test_empty(self):
        assert alignment_sections([]) == []

    def test_long_key_rendered_in_own_section(self):
        long_path = "/" + "x" * 90
        cfg = _config([
            (RouteKey(method="GET", path="/a"), AuthPolicy.public()),
            (RouteKey(method="GET", path="/bb"), AuthPolicy.public()),
            (RouteKey(method="GET", path=long_path), AuthPolicy(require_auth=True)),
            (RouteKey(method="POST", path="/c"), AuthPolicy(require_auth=True)),
        ])
        code = generate("httproutes", cfg)
        assert '\t{Method: "GET", Path: "/a"}:  {RequireAuth: false},\n' in code
        assert '\t{Method: "GET", Path: "/bb"}: {RequireAuth: false},\n' in code
        assert f'\t{{Method: "GET", Path: "{long_path}"}}: {{RequireAuth: true}},\n' in code
        assert '\t{Method: "POST", Path: "/c"}: {RequireAuth: true},\n' in code

    @pytest.mark.skipif(shutil.which("gofmt") is None, reason="gofmt not installed")
    def test_output_is_gofmt_clean(self, tmp_path):
        cfg = _config(ENTRIES + [(RouteKey(method="GET", path="/" + "x" * 90), AuthPolicy(require_auth=True))])
        target = tmp_path / "authpolicy.go"
        target.write_text(generate("httproutes", cfg), encoding="utf-8")
        result = subprocess.run(["gofmt", "-l", str(target)], capture_output=True, text=True, timeout=30)
        assert result.returncode == 0, result.stderr
        assert result.stdout == ""


class TestGoQuote:
    def test_plain(self):
        assert go_quote("/items/{id}") == '"/items/{id}"'

    def test_escapes(self):
        assert go_quote('a"b\\c\td') == r'"a\"b\\c\td"'

    def test_control_character(self):
        assert go_quote("\x00") == r'"\u0000"'

    def test_printable_unicode_kept(self):
        assert go_quote("/légumes") == '"/légumes"'


class TestGoNamespace:
    @pytest.mark.parametrize("namespace", ["", "1routes", "http-routes", "http.routes", "_", "func", "package", "has space"])
    def test_invalid_namespace_rejected(self, namespace):
        with pytest.raises(InvalidNamespaceError):
            generate(namespace, _config(ENTRIES))

    @pytest.mark.parametrize("namespace", ["httproutes", "authz_v2", "_internal", "Routes"])
    def test_valid_namespace_accepted(self, namespace):
        assert f"package {namespace}\n" in generate(namespace, _config(ENTRIES))

    def test_unknown_target(self):
        with pytest.raises(ValueError, match="unknown target"):
            generate("httproutes", _config(ENTRIES), target="rust")
