"""
Tests for config key scanning — Declarations, usages and key matching

These tests validate:
- Nested arrays produce file-prefixed dotted keys
- Upward walk from a cursor rebuilds the full key
- Exact, suffix and longest-path matching for usages
- Every occurrence of a key in a file is found
"""

from pathlib import Path
from textwrap import dedent

from laranav.core.models import ConfigReference
from laranav.core.parsing.config_keys import (
    ConfigParser, config_call_at, config_calls_in_line, config_key_at, find_config_definition,
    find_config_references, find_config_references_in_file, parse_config_lines,
    scan_file_for_references,
)
from tests.factories import SAMPLE_APP_CONFIG


def _lines(text: str):
    return dedent(text).lstrip("\n").split("\n")


def _items(text: str, name: str = "app"):
    return parse_config_lines(_lines(text), Path(f"/p/config/{name}.php"))


class TestParseConfigLines:
    """Declarations of one config file."""

    def test_nested_key(self):
        """A two-level array yields app.doudian.settle_start_time."""
        keys = [item.key for item in _items(SAMPLE_APP_CONFIG)]
        assert keys == [
            "app.name",
            "app.doudian",
            "app.doudian.settle_start_time",
            "app.doudian.app_key",
        ]

    def test_item_positions(self):
        """Line and key span point at the declaration."""
        lines = _lines(SAMPLE_APP_CONFIG)
        item = next(i for i in _items(SAMPLE_APP_CONFIG) if i.key.endswith("settle_start_time"))
        assert item.line == 6
        assert lines[item.line][item.key_start:item.key_end] == "settle_start_time"
        assert item.value == "env('DOUDIAN_SETTLE_START', '00:00')"
        assert item.path == "doudian.settle_start_time"
        assert item.file_base == "app"

    def test_three_levels(self):
        """Depth is not limited to two."""
        items = _items("""
            <?php
            return [
                'connections' => [
                    'mysql' => [
                        'host' => env('DB_HOST', '127.0.0.1'),
                    ],
                ],
                'default' => 'mysql',
            ];
        """, name="database")
        assert [i.key for i in items] == [
            "database.connections",
            "database.connections.mysql",
            "database.connections.mysql.host",
            "database.default",
        ]

    def test_inline_array_not_recursed(self):
        """An array opened and closed on one line stays a single item."""
        items = _items("""
            return [
                'drivers' => ['a' => 1, 'b' => 2],
                'next' => true,
            ];
        """)
        assert [i.key for i in items] == ["app.drivers", "app.next"]

    def test_comments_skipped(self):
        """Commented declarations are not items."""
        items = _items("""
            return [
                // 'old' => 1,
                'new' => 2,
            ];
        """)
        assert [i.key for i in items] == ["app.new"]

    def test_double_quoted_keys(self):
        """Either quote style declares a key."""
        assert [i.key for i in _items('return [\n    "name" => "x",\n];')] == ["app.name"]


class TestConfigKeyAt:
    """Reconstructing a full key from a cursor position."""

    def test_nested_declaration(self):
        """Walking up collects every enclosing array key."""
        lines = _lines(SAMPLE_APP_CONFIG)
        column = lines[6].index("settle_start_time") + 2
        key, start, end = config_key_at(lines, 6, column, "app")
        assert key == "app.doudian.settle_start_time"
        assert lines[6][start:end] == "settle_start_time"

    def test_top_level_declaration(self):
        """A top-level key has only the file prefix."""
        lines = _lines(SAMPLE_APP_CONFIG)
        assert config_key_at(lines, 3, lines[3].index("name"), "app")[0] == "app.name"

    def test_sibling_arrays_not_collected(self):
        """A closed sibling array above is not a parent."""
        lines = _lines("""
            return [
                'first' => [
                    'a' => 1,
                ],
                'second' => [
                    'b' => 2,
                ],
            ];
        """)
        column = lines[5].index("b")
        assert config_key_at(lines, 5, column, "app")[0] == "app.second.b"

    def test_cursor_on_value(self):
        """Only the key is navigable."""
        lines = _lines(SAMPLE_APP_CONFIG)
        assert config_key_at(lines, 6, lines[6].index("env"), "app") is None

    def test_line_without_key(self):
        """Structural lines have no key."""
        lines = _lines(SAMPLE_APP_CONFIG)
        assert config_key_at(lines, 2, 3, "app") is None
        assert config_key_at(lines, 99, 0, "app") is None


class TestFindConfigDefinition:
    """Usage key to declaration."""

    def test_exact(self):
        """Full keys match exactly."""
        definition = find_config_definition(_items(SAMPLE_APP_CONFIG), "app.doudian.settle_start_time")
        assert definition.exact is True
        assert definition.item.line == 6

    def test_suffix_fallback(self):
        """A key declared deeper than the usage says is found by suffix."""
        items = _items("""
            return [
                'services' => [
                    'doudian' => [
                        'settle_start_time' => '00:00',
                    ],
                ],
            ];
        """)
        definition = find_config_definition(items, "app.doudian.settle_start_time")
        assert definition.exact is False
        assert definition.item.key == "app.services.doudian.settle_start_time"
        assert definition.location.line == 3

    def test_longest_path_fallback(self):
        """A usage deeper than any declaration lands on the longest declared tail."""
        items = _items("""
            return [
                'doudian' => [
                    'settle' => env('SETTLE'),
                ],
            ];
        """)
        definition = find_config_definition(items, "app.legacy.doudian.settle")
        assert definition.item.key == "app.doudian.settle"

    def test_other_file_never_matches(self):
        """Fallbacks stay inside the file named by the first segment."""
        items = _items(SAMPLE_APP_CONFIG)
        assert find_config_definition(items, "services.doudian.settle_start_time") is None

    def test_partial_segment_not_a_match(self):
        """Suffixes match on segment boundaries only."""
        items = _items(SAMPLE_APP_CONFIG)
        assert find_config_definition(items, "app.start_time") is None

    def test_bare_file_name(self):
        """A key without a path has nothing to fall back on."""
        assert find_config_definition(_items(SAMPLE_APP_CONFIG), "app") is None


class TestConfigCalls:
    """config() usages."""

    def test_calls_in_line(self):
        """Both call forms, key spans only."""
        line = "$a = config('app.name'); $b = config(\"app.env\", 'prod');"
        calls = config_calls_in_line(line)
        assert [c[0] for c in calls] == ["app.name", "app.env"]
        key, start, end = calls[0]
        assert line[start:end] == "app.name"

    def test_methods_named_config_ignored(self):
        """->config(...) and ::config(...) are someone else's methods."""
        assert config_calls_in_line("$this->config('app.name'); Foo::config('x.y');") == []

    def test_dynamic_keys_ignored(self):
        """Only literal keys are usages."""
        assert config_calls_in_line("config($key); config('app.' . $name);") == []

    def test_call_at(self):
        """Cursor lookup, inclusive of the key end."""
        line = "return config('app.name');"
        start = line.index("app.name")
        assert config_call_at(line, start)[0] == "app.name"
        assert config_call_at(line, start + len("app.name"))[0] == "app.name"
        assert config_call_at(line, 0) is None


class TestConfigReferences:
    """Usages across files."""

    def test_every_occurrence_found(self, sample_project):
        """Repeated usages with different defaults each get a location."""
        path = sample_project.root / "app/Services/SettleService.php"
        locations = find_config_references_in_file(path, "app.doudian.settle_start_time")
        assert [loc.line for loc in locations] == [8, 9]
        line = path.read_text().split("\n")[8]
        assert line[locations[0].start:locations[0].end] == "app.doudian.settle_start_time"

    def test_scan_deduplicates_per_file(self, sample_project):
        """The index keeps each key once per file."""
        path = sample_project.root / "app/Services/SettleService.php"
        refs = scan_file_for_references(path)
        assert [r.key for r in refs] == ["app.doudian.settle_start_time", "app.name"]

    def test_find_references_by_containment(self):
        """Entries whose key contains the query are returned."""
        refs = [
            ConfigReference("app.doudian.settle_start_time", Path("/a.php")),
            ConfigReference("app.name", Path("/b.php")),
        ]
        assert [r.file for r in find_config_references(refs, "app.doudian")] == [Path("/a.php")]
        assert find_config_references(refs, "queue.default") == []


class TestConfigParser:
    """File discovery."""

    def test_config_files_not_recursive(self, laravel_factory):
        """Only files directly under config/ are declarations."""
        laravel_factory.add_config("b.php", "<?php return ['x' => 1];")
        laravel_factory.add_config("a.php", "<?php return ['y' => 1];")
        laravel_factory.add_config("nested/c.php", "<?php return ['z' => 1];")
        parser = ConfigParser(laravel_factory.root)
        assert [p.name for p in parser.discover_config_files()] == ["a.php", "b.php"]

    def test_reference_files_respect_exclusions(self, laravel_factory):
        """Excluded directories are not scanned for usages."""
        laravel_factory.write("app/Models/User.php", "<?php config('app.name');")
        laravel_factory.write("app/vendor/Lib.php", "<?php config('app.name');")
        laravel_factory.write("routes/web.php", "<?php config('app.url');")
        parser = ConfigParser(laravel_factory.root)
        files = [p.relative_to(laravel_factory.root).as_posix() for p in parser.discover_reference_files()]
        assert files == ["app/Models/User.php", "routes/web.php"]

    def test_parse_all(self, sample_project):
        """Items of every config file, in file order."""
        items = ConfigParser(sample_project.root).parse_all()
        assert "app.doudian.settle_start_time" in [i.key for i in items]
