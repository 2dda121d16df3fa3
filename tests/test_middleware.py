"""
Tests for middleware scanning — Usages in routes, aliases in the kernel

These tests validate:
- Parameter stripping (throttle:200,1,user_id -> throttle)
- Group, chained and withoutMiddleware shapes
- Kernel alias region bounds and last-write-wins overwrites
"""

from pathlib import Path

from laranav.core.models import MiddlewareUsageKind
from laranav.core.parsing.middleware import (
    KernelParser, MiddlewareParser, base_name, find_middleware_definition,
    middleware_at, middleware_in_line,
)


class TestMiddlewareNames:
    """Name extraction from a single line."""

    def test_parameters_stripped_from_base_name(self):
        """throttle:200,1,user_id keeps its full name and a bare base name."""
        usages = middleware_in_line("->middleware('throttle:200,1,user_id');")
        assert len(usages) == 1
        assert usages[0].base_name == "throttle"
        assert usages[0].full_name == "throttle:200,1,user_id"

    def test_base_name_without_parameters(self):
        """A plain name is its own base name."""
        assert base_name("auth") == "auth"
        assert base_name("role:admin:strict") == "role"

    def test_group_option_list(self):
        """'middleware' => [...] yields every quoted item."""
        usages = middleware_in_line("Route::group(['middleware' => ['auth', 'throttle:60,1']], function () {")
        assert [u.full_name for u in usages] == ["auth", "throttle:60,1"]
        assert all(u.kind == MiddlewareUsageKind.GROUP for u in usages)

    def test_group_option_single(self):
        """'middleware' => 'auth' without a list."""
        usages = middleware_in_line("$api->group(['middleware' => 'auth:api'], function ($api) {")
        assert [u.base_name for u in usages] == ["auth"]

    def test_chained_variadic(self):
        """->middleware('a', 'b') lists both names."""
        usages = middleware_in_line("Route::get('x', 'A@b')->middleware('auth', 'verified');")
        assert [u.full_name for u in usages] == ["auth", "verified"]
        assert all(u.kind == MiddlewareUsageKind.CHAIN for u in usages)

    def test_without_middleware(self):
        """->withoutMiddleware([...]) is its own kind."""
        usages = middleware_in_line("Route::post('hook', 'HookController@handle')->withoutMiddleware(['csrf']);")
        assert usages[0].kind == MiddlewareUsageKind.WITHOUT
        assert usages[0].full_name == "csrf"

    def test_class_references_ignored(self):
        """Unquoted entries are not middleware names."""
        usages = middleware_in_line("->middleware([EnsureTokenIsValid::class, 'auth'])")
        assert [u.full_name for u in usages] == ["auth"]

    def test_span_covers_name_only(self):
        """The span excludes the quotes."""
        line = "    ->middleware('throttle:200,1,user_id');"
        usage = middleware_in_line(line)[0]
        assert line[usage.start:usage.end] == "throttle:200,1,user_id"

    def test_middleware_at(self):
        """Cursor lookup returns the usage under the column."""
        line = "->middleware(['auth', 'throttle:60,1'])"
        usage = middleware_at(line, line.index("throttle") + 2)
        assert usage.base_name == "throttle"
        assert middleware_at(line, 0) is None


class TestMiddlewareParser:
    """Usages across a routes file."""

    def test_parse_file(self, laravel_factory):
        """Usages carry their line numbers; comment lines are skipped."""
        path = laravel_factory.add_routes("web.php", """
            <?php
            // Route::get('x', 'A@b')->middleware('ignored');
            Route::group(['middleware' => ['auth']], function () {
                Route::get('a', 'AController@a')->middleware('throttle:200,1,user_id');
            });
        """)
        usages = MiddlewareParser().parse_file(path)
        assert [(u.base_name, u.line) for u in usages] == [("auth", 2), ("throttle", 3)]
        assert all(u.file == path for u in usages)

    def test_missing_file(self, tmp_path):
        """Unreadable files contribute nothing."""
        assert MiddlewareParser().parse_file(tmp_path / "nope.php") == []


class TestKernelParser:
    """Alias definitions from the HTTP kernel."""

    def test_aliases_parsed(self, laravel_factory):
        """Every alias in $routeMiddleware is defined, with its class."""
        path = laravel_factory.add_http_kernel({
            "auth": "\\App\\Http\\Middleware\\Authenticate::class",
            "throttle": "\\Illuminate\\Routing\\Middleware\\ThrottleRequests::class",
        })
        parser = KernelParser(laravel_factory.root, laravel_factory.config.layout)
        definitions = parser.parse_definitions()

        assert set(definitions) == {"auth", "throttle"}
        auth = definitions["auth"]
        assert auth.class_reference == "\\App\\Http\\Middleware\\Authenticate::class"
        assert auth.file == path
        assert auth.line == 11

    def test_middleware_aliases_property(self, laravel_factory):
        """Laravel 10 $middlewareAliases is read the same way."""
        laravel_factory.add_http_kernel({"auth": "Authenticate::class"}, property_name="middlewareAliases")
        definitions = KernelParser(laravel_factory.root).parse_definitions()
        assert "auth" in definitions

    def test_entries_outside_region_ignored(self, laravel_factory):
        """Global middleware and later arrays are not aliases."""
        laravel_factory.write("app/Http/Kernel.php", """
            <?php
            class Kernel
            {
                protected $middlewareGroups = [
                    'web' => [
                        \\App\\Http\\Middleware\\EncryptCookies::class,
                    ],
                ];

                protected $routeMiddleware = [
                    'auth' => \\App\\Http\\Middleware\\Authenticate::class,
                ];

                protected $extra = [
                    'later' => Later::class,
                ];
            }
        """)
        definitions = KernelParser(laravel_factory.root).parse_definitions()
        assert list(definitions) == ["auth"]

    def test_duplicate_alias_last_wins(self, laravel_factory):
        """A repeated alias overwrites the earlier entry."""
        laravel_factory.write("app/Http/Kernel.php", """
            <?php
            class Kernel
            {
                protected $routeMiddleware = [
                    'auth' => First::class,
                    'auth' => Second::class, // override
                ];
            }
        """)
        definitions = KernelParser(laravel_factory.root).parse_definitions()
        assert definitions["auth"].class_reference == "Second::class"
        assert definitions["auth"].line == 5

    def test_console_kernel_fallback(self, laravel_factory):
        """Without an HTTP kernel the console kernel is read."""
        laravel_factory.write("app/Console/Kernel.php", """
            <?php
            class Kernel
            {
                protected $routeMiddleware = [
                    'sso' => Sso::class,
                ];
            }
        """)
        parser = KernelParser(laravel_factory.root)
        assert parser.find_kernel_file() == laravel_factory.root / "app/Console/Kernel.php"
        assert "sso" in parser.parse_definitions()

    def test_no_kernel(self, tmp_path):
        """A project without kernels has no aliases."""
        assert KernelParser(tmp_path).parse_definitions() == {}


class TestFindMiddlewareDefinition:
    """Exact lookup by base name."""

    def test_lookup_strips_parameters(self, laravel_factory):
        """throttle:60,1 finds the throttle alias."""
        laravel_factory.add_http_kernel({"throttle": "Throttle::class"})
        definitions = KernelParser(laravel_factory.root).parse_definitions()
        assert find_middleware_definition(definitions, "throttle:60,1").name == "throttle"

    def test_no_fuzzy_match(self):
        """Prefixes do not match."""
        assert find_middleware_definition({}, "auth") is None
