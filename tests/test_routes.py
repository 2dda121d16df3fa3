"""
Tests for RouteParser — Namespace stacks, group matching, route extraction

These tests validate:
- Absolute and relative group namespaces
- Indentation-exact group closing
- Route::group resets, fluent groups, single-line groups
- Route call spans used for cursor lookups
"""

from pathlib import Path
from textwrap import dedent

import pytest

from laranav.core.parsing.routes import (
    RouteParser, build_namespace, route_calls, route_target_at, extract_group_namespace,
)


def _parse(text: str, **kwargs):
    lines = dedent(text).lstrip("\n").split("\n")
    return RouteParser(**kwargs).parse_lines(lines, Path("/p/routes/api.php"))


def _by_path(routes):
    return {r.url_path: r for r in routes}


# =============================================================================
# build_namespace
# =============================================================================

class TestBuildNamespace:
    """Composition of a namespace stack."""

    def test_empty_stack(self):
        """No groups means no namespace."""
        assert build_namespace([]) == ""

    def test_relative_gets_root_prefix(self):
        """A lone relative entry is placed under the root namespace."""
        assert build_namespace(["Staff"]) == "App\\Staff"

    def test_relative_appends_to_absolute(self):
        """Relative entries extend the namespace before them."""
        assert build_namespace(["App\\Http\\Controllers", "Staff"]) == "App\\Http\\Controllers\\Staff"

    def test_absolute_replaces_prefix(self):
        """An absolute entry discards everything outside it."""
        assert build_namespace(["Admin", "App\\Api\\Controllers"]) == "App\\Api\\Controllers"

    def test_custom_root(self):
        """The root namespace is configurable."""
        assert build_namespace(["Staff"], root_namespace="Shop") == "Shop\\Staff"
        assert build_namespace(["Shop\\Http"], root_namespace="Shop") == "Shop\\Http"

    def test_leading_backslash_and_slashes(self):
        """Leading separators are dropped and forward slashes converted."""
        assert build_namespace(["\\App\\Http"]) == "App\\Http"
        assert build_namespace(["Admin/Reports"]) == "App\\Admin\\Reports"


# =============================================================================
# Line primitives
# =============================================================================

class TestRouteCalls:
    """Route call extraction from one line."""

    def test_verb_route(self):
        """A verb route yields method, path, controller and action."""
        calls = route_calls("    Route::get('users', 'UserController@index');")
        assert len(calls) == 1
        call = calls[0]
        assert call.method == "GET"
        assert call.url_path == "users"
        assert call.short_controller == "User"
        assert call.action == "index"

    def test_dingo_receiver(self):
        """$api-> routes are recognised like Route:: ones."""
        calls = route_calls("$api->post('orders', 'OrderController@store');")
        assert [c.method for c in calls] == ["POST"]

    def test_match_route_joins_verbs(self):
        """match() reports its verbs joined by |."""
        calls = route_calls("Route::match(['get', 'post'], 'login', 'AuthController@login');")
        assert calls[0].method == "GET|POST"

    def test_controller_sub_namespace(self):
        """A qualified controller keeps its prefix separately."""
        call = route_calls("Route::get('u', 'Admin\\UserController@index');")[0]
        assert call.namespace_suffix == "Admin"
        assert call.short_controller == "User"

    def test_closure_route_ignored(self):
        """Routes without Controller@action are not navigable."""
        assert route_calls("Route::get('/', function () { return view('welcome'); });") == []

    def test_target_spans(self):
        """Spans cover the controller and action names exactly."""
        line = "    Route::get('users', 'UserController@index');"
        call = route_calls(line)[0]
        assert line[call.controller_start:call.controller_end] == "UserController"
        assert line[call.action_start:call.action_end] == "index"


class TestRouteTargetAt:
    """Cursor lookups on a route line."""

    LINE = "        $api->post('staff/foo', 'FooController@bar');"

    def test_on_controller(self):
        """Cursor inside the controller name."""
        target = route_target_at(self.LINE, self.LINE.index("FooController") + 3)
        assert target.part == "controller"
        assert target.action is None

    def test_on_action(self):
        """Cursor inside the action name."""
        target = route_target_at(self.LINE, self.LINE.index("@bar") + 2)
        assert target.part == "action"
        assert target.action == "bar"

    def test_outside_targets(self):
        """Cursor on the path or the receiver finds nothing."""
        assert route_target_at(self.LINE, self.LINE.index("staff")) is None
        assert route_target_at(self.LINE, 2) is None


class TestExtractGroupNamespace:
    """Bounded lookahead for a group's namespace option."""

    def test_same_line(self):
        """Option on the opening line."""
        lines = ["Route::group(['namespace' => 'Admin'], function () {"]
        assert extract_group_namespace(lines, 0) == "Admin"

    def test_stops_at_end_of_options(self):
        """A namespace after the options array belongs to someone else."""
        lines = [
            "$api->group(['prefix' => 'v1'], function ($api) {",
            "    $api->group(['namespace' => 'Inner'], function ($api) {",
        ]
        assert extract_group_namespace(lines, 0) is None

    def test_lookahead_limit(self):
        """Lines past the lookahead are never read."""
        lines = [
            "$api->group([",
            "    'prefix' => 'v1',",
            "    'middleware' => 'auth',",
            "    'namespace' => 'Api',",
            "], function ($api) {",
        ]
        assert extract_group_namespace(lines, 0, lookahead=3) is None
        assert extract_group_namespace(lines, 0, lookahead=15) == "Api"

    def test_bare_constant_value(self):
        """Unquoted values (constants) are taken as written."""
        lines = ["Route::group(['namespace' => self::NS], function () {"]
        assert extract_group_namespace(lines, 0) == "self::NS"


# =============================================================================
# RouteParser
# =============================================================================

class TestRouteParserNamespaces:
    """Namespace resolution across nested groups."""

    def test_absolute_inside_relative_wins(self):
        """An absolute inner group discards the outer relative prefix."""
        routes = _by_path(_parse("""
            $api->group(['namespace' => 'Admin'], function ($api) {
                $api->group(['namespace' => 'App\\Http\\Controllers\\Staff'], function ($api) {
                    $api->get('inner', 'FooController@bar');
                });
                $api->get('outer', 'BazController@qux');
            });
        """))
        assert routes["inner"].namespace == "App\\Http\\Controllers\\Staff"
        assert routes["outer"].namespace == "App\\Admin"

    def test_sibling_relative_groups(self):
        """Siblings each extend the shared parent, never each other."""
        routes = _by_path(_parse("""
            $api->group(['namespace' => 'App\\Http\\Controllers'], function ($api) {
                $api->group(['namespace' => 'One'], function ($api) {
                    $api->get('one', 'AController@x');
                });
                $api->group(['namespace' => 'Two'], function ($api) {
                    $api->get('two', 'BController@y');
                });
            });
        """))
        assert routes["one"].namespace == "App\\Http\\Controllers\\One"
        assert routes["two"].namespace == "App\\Http\\Controllers\\Two"

    def test_mismatched_indentation_does_not_pop(self):
        """A closer at another indentation leaves the group open."""
        routes = _by_path(_parse("""
            $api->group(['namespace' => 'Outer'], function ($api) {
                $api->group(['namespace' => 'Inner'], function ($api) {
                    $api->get('a', 'AController@a');
                  });
                $api->get('b', 'BController@b');
            });
            $api->get('c', 'CController@c');
        """))
        assert routes["a"].namespace == "App\\Outer\\Inner"
        assert routes["b"].namespace == "App\\Outer\\Inner"
        # The outer closer does not match Inner's indentation either
        assert routes["c"].namespace == "App\\Outer\\Inner"

    def test_matching_closers_pop_in_order(self):
        """Correctly indented closers unwind the stack."""
        routes = _by_path(_parse("""
            $api->group(['namespace' => 'Outer'], function ($api) {
                $api->group(['namespace' => 'Inner'], function ($api) {
                    $api->get('a', 'AController@a');
                });
                $api->get('b', 'BController@b');
            });
            $api->get('c', 'CController@c');
        """))
        assert routes["b"].namespace == "App\\Outer"
        assert routes["c"].namespace == ""

    def test_chained_closer_pops(self):
        """}) followed by chained calls still closes the group."""
        routes = _by_path(_parse("""
            $api->group(['namespace' => 'Admin'], function ($api) {
                $api->get('a', 'AController@a');
            })->middleware('auth');
            $api->get('b', 'BController@b');
        """))
        assert routes["a"].namespace == "App\\Admin"
        assert routes["b"].namespace == ""

    def test_route_group_resets_stack(self):
        """Route::group( starts from an empty stack."""
        routes = _by_path(_parse("""
            $api->group(['namespace' => 'Leftover'], function ($api) {
            Route::group(['prefix' => 'x'], function () {
                Route::get('b', 'BController@b');
            });
        """))
        assert routes["b"].namespace == ""

    def test_multi_line_options(self):
        """Options spread over several lines are found within the lookahead."""
        routes = _by_path(_parse("""
            $api->group([
                'prefix' => 'v1',
                'namespace' => 'Api',
            ], function ($api) {
                $api->get('x', 'XController@y');
            });
        """))
        assert routes["x"].namespace == "App\\Api"

    def test_single_line_group(self):
        """A group opened and closed on one line applies to that line only."""
        routes = _by_path(_parse("""
            $api->group(['namespace' => 'Staff'], function($api){ $api->get('x','FooController@bar'); });
            $api->get('y', 'YController@z');
        """))
        assert routes["x"].namespace == "App\\Staff"
        assert routes["y"].namespace == ""

    def test_fluent_group(self):
        """Route::namespace(...)->group( pushes its namespace."""
        routes = _by_path(_parse("""
            Route::namespace('Admin')->prefix('admin')->group(function () {
                Route::get('users', 'UserController@index');
            });
            Route::get('home', 'HomeController@index');
        """))
        assert routes["users"].namespace == "App\\Admin"
        assert routes["home"].namespace == ""

    def test_fluent_group_nested_in_fluent_group(self):
        """A chained group inside a namespaced chained group keeps the outer namespace."""
        routes = _by_path(_parse("""
            Route::namespace('Admin')->group(function () {
                Route::middleware('auth')->group(function () {
                    Route::get('users', 'UserController@index');
                });
                Route::namespace('Reports')->group(function () {
                    Route::get('daily', 'DailyController@show');
                });
                Route::get('dashboard', 'DashboardController@index');
            });
            Route::get('home', 'HomeController@index');
        """))
        assert routes["users"].namespace == "App\\Admin"
        assert routes["daily"].namespace == "App\\Admin\\Reports"
        assert routes["dashboard"].namespace == "App\\Admin"
        assert routes["home"].namespace == ""

    def test_controller_sub_namespace_joins_group(self):
        """Admin\\UserController inside a group extends the group namespace."""
        routes = _parse("""
            Route::group(['namespace' => 'App\\Http\\Controllers'], function () {
                Route::get('u', 'Admin\\UserController@index');
            });
        """)
        assert routes[0].namespace == "App\\Http\\Controllers\\Admin"
        assert routes[0].controller == "User"
        assert routes[0].qualified_controller == "App\\Http\\Controllers\\Admin\\UserController"


class TestRouteParserFiles:
    """File-level behavior."""

    def test_comments_skipped(self):
        """Commented-out routes are not indexed."""
        routes = _parse("""
            // Route::get('old', 'OldController@index');
            /* Route::get('older', 'OldController@index'); */
            Route::get('new', 'NewController@index');
        """)
        assert [r.url_path for r in routes] == ["new"]

    def test_positions(self):
        """Line and column are 0-based and point at the call."""
        routes = _parse("""
            <?php

                Route::get('users', 'UserController@index');
        """)
        assert routes[0].line == 2
        assert routes[0].column == 4

    def test_parse_file_is_deterministic(self, laravel_factory):
        """Re-parsing an unchanged file yields an identical list."""
        from tests.factories import SAMPLE_API_ROUTES

        path = laravel_factory.add_routes("api.php", SAMPLE_API_ROUTES)
        parser = RouteParser()
        first = parser.parse_file(path)
        second = parser.parse_file(path)
        assert first == second
        assert len(first) == 3

    def test_missing_file(self, tmp_path):
        """An unreadable file contributes nothing."""
        assert RouteParser().parse_file(tmp_path / "missing.php") == []

    def test_oversized_file_skipped(self, laravel_factory):
        """Files above max_file_size are skipped."""
        path = laravel_factory.add_routes("big.php", "Route::get('a', 'AController@b');\n" * 50)
        assert RouteParser(max_file_size=100).parse_file(path) == []
        assert len(RouteParser().parse_file(path)) == 50

    @pytest.mark.parametrize("verb", ["get", "post", "put", "delete", "patch", "options", "any"])
    def test_all_verbs(self, verb):
        """Every verb helper is recognised and upper-cased."""
        routes = _parse(f"Route::{verb}('x', 'XController@y');")
        assert routes[0].method == verb.upper()
