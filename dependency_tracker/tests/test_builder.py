"""
Tests for the dependency graph builder: import binding, missing imports,
the used/unused partition and framework liveness end to end.
"""

import os
import tempfile
import unittest

from dependency_tracker.core.entities import (
    DynamicUsage,
    Export,
    Hook,
    Import,
    Interface,
    PotentialInterfaceUsage,
    ProjectFacts,
    Route,
    ServerAction,
    UsageKind,
    UsageSite,
)
from dependency_tracker.graph.builder import (
    REASON_EXPORT_NOT_FOUND,
    REASON_NO_EXPORTS,
    analyze,
    match_export,
)


def write_files(root, files):
    for rel, content in files.items():
        path = os.path.join(root, rel)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf8") as f:
            f.write(content)


class BuilderTestCase(unittest.TestCase):
    """Temp project with a few empty source files; facts are built by hand."""

    files = ("app/page.tsx", "lib/x.ts", "lib/empty.ts")

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = os.path.realpath(self._tmp.name)
        write_files(self.root, {rel: "" for rel in self.files})

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def path(self, rel):
        return os.path.join(self.root, *rel.split("/"))

    def export(self, rel, name, line=1, is_default=False, local_name=None):
        if local_name is None and not is_default:
            local_name = name
        return Export(name, self.path(rel), line, is_default=is_default, local_name=local_name)

    def run_analysis(self, facts):
        return analyze(facts, self.root)

    def unused_names(self, result):
        return {(os.path.relpath(e.declaring_file, self.root), e.exported_name) for e in result.unused_exports}

    def used_names(self, result):
        return {(os.path.relpath(e.declaring_file, self.root), e.exported_name) for e in result.used_exports.values()}


class ImportBindingTests(BuilderTestCase):
    files = ("src/a.ts", "src/b.ts", "src/empty.ts", "src/user.ts")

    def test_named_import_marks_only_that_export(self) -> None:
        facts = ProjectFacts(
            exports=[self.export("src/b.ts", "foo"), self.export("src/b.ts", "bar", line=5)],
            imports=[Import(self.path("src/a.ts"), "./b", 1, ["foo"])],
        )
        result = self.run_analysis(facts)
        self.assertEqual(self.used_names(result), {("src/b.ts", "foo")})
        self.assertEqual(self.unused_names(result), {("src/b.ts", "bar")})

        foo = next(iter(result.used_exports.values()))
        self.assertEqual(foo.used_by, [UsageSite(self.path("src/a.ts"), 1)])
        self.assertEqual(result.missing_imports, [])

    def test_anonymous_default_matches_any_default_import(self) -> None:
        facts = ProjectFacts(
            exports=[self.export("src/b.ts", "default", is_default=True)],
            imports=[Import(self.path("src/a.ts"), "./b", 3, ["Whatever"])],
        )
        result = self.run_analysis(facts)
        self.assertEqual(len(result.used_exports), 1)
        self.assertEqual(result.unused_exports, [])

    def test_named_default_matches_its_local_name(self) -> None:
        facts = ProjectFacts(
            exports=[self.export("src/user.ts", "default", is_default=True, local_name="UserCard")],
            imports=[
                Import(self.path("src/a.ts"), "./user", 1, ["UserCard"]),
                Import(self.path("src/b.ts"), "./user", 1, ["Other"]),
            ],
        )
        result = self.run_analysis(facts)
        self.assertEqual(len(result.used_exports), 1)
        self.assertEqual(len(result.missing_imports), 1)
        missing = result.missing_imports[0]
        self.assertEqual(missing.missing_name, "Other")
        self.assertEqual(missing.reason, REASON_EXPORT_NOT_FOUND)
        self.assertEqual(missing.resolved_target, self.path("src/user.ts"))

    def test_aliased_import_looks_up_original_name(self) -> None:
        facts = ProjectFacts(
            exports=[self.export("src/b.ts", "formatDate")],
            imports=[Import(self.path("src/a.ts"), "./b", 2, ["fmt"], aliases={"fmt": "formatDate"})],
        )
        result = self.run_analysis(facts)
        self.assertEqual(self.used_names(result), {("src/b.ts", "formatDate")})
        self.assertEqual(result.missing_imports, [])

    def test_namespace_import_marks_every_export(self) -> None:
        facts = ProjectFacts(
            exports=[self.export("src/b.ts", "one"), self.export("src/b.ts", "two", line=2)],
            imports=[Import(self.path("src/a.ts"), "./b", 1, namespace_name="utils")],
        )
        result = self.run_analysis(facts)
        self.assertEqual(self.used_names(result), {("src/b.ts", "one"), ("src/b.ts", "two")})

    def test_target_without_exports(self) -> None:
        facts = ProjectFacts(
            imports=[Import(self.path("src/a.ts"), "./empty", 4, ["thing"], namespace_name="ns")],
        )
        result = self.run_analysis(facts)
        self.assertEqual(
            sorted(m.missing_name for m in result.missing_imports),
            ["* as ns", "thing"],
        )
        self.assertTrue(all(m.reason == REASON_NO_EXPORTS for m in result.missing_imports))

    def test_unresolved_relative_import(self) -> None:
        facts = ProjectFacts(
            imports=[
                Import(self.path("src/a.ts"), "./gone", 1, ["x", "y"]),
                Import(self.path("src/a.ts"), "./gone", 9, ["z"]),
            ],
        )
        result = self.run_analysis(facts)
        self.assertEqual([m.missing_name for m in result.missing_imports], ["x", "y", "z"])
        self.assertIsNone(result.missing_imports[0].resolved_target)
        self.assertIn("Relative path resolution failed", result.missing_imports[0].reason)
        # one error per (module reference, importing file)
        self.assertEqual(len(result.errors), 1)
        self.assertIn("Module resolution failed for './gone' in src/a.ts", result.errors[0])

    def test_side_effect_import_of_missing_file_reports_error_only(self) -> None:
        facts = ProjectFacts(imports=[Import(self.path("src/a.ts"), "./polyfill", 1)])
        result = self.run_analysis(facts)
        self.assertEqual(result.missing_imports, [])
        self.assertEqual(len(result.errors), 1)

    def test_external_packages_are_never_missing(self) -> None:
        write_files(self.root, {"node_modules/pkg/index.js": "", "src/styles.css": ""})
        facts = ProjectFacts(
            imports=[
                Import(self.path("src/a.ts"), "react", 1, ["useState"]),
                Import(self.path("src/a.ts"), "../node_modules/pkg", 2, ["thing"]),
                Import(self.path("src/a.ts"), "./styles.css", 3),
            ],
        )
        result = self.run_analysis(facts)
        self.assertEqual(result.missing_imports, [])
        self.assertEqual(result.errors, [])

    def test_graph_stats_count_resolved_edges(self) -> None:
        facts = ProjectFacts(
            exports=[self.export("src/b.ts", "foo")],
            imports=[
                Import(self.path("src/a.ts"), "./b", 1, ["foo"]),
                Import(self.path("src/a.ts"), "react", 2, ["memo"]),
            ],
        )
        result = self.run_analysis(facts)
        self.assertEqual(result.graph_stats["edges"], 1)


class PartitionTests(BuilderTestCase):
    files = ("src/a.ts", "src/b.ts")

    def facts(self):
        return ProjectFacts(
            exports=[
                self.export("src/b.ts", "foo"),
                self.export("src/b.ts", "bar", line=4),
                self.export("src/a.ts", "default", is_default=True),
            ],
            imports=[Import(self.path("src/a.ts"), "./b", 1, ["foo", "nope"])],
            parse_errors=["Parse Error: src/c.ts - boom"],
        )

    def test_every_export_lands_in_exactly_one_partition(self) -> None:
        facts = self.facts()
        result = self.run_analysis(facts)
        used_keys = set(result.used_exports)
        unused_keys = {e.key for e in result.unused_exports}
        self.assertFalse(used_keys & unused_keys)
        self.assertEqual(used_keys | unused_keys, {e.key for e in facts.exports})
        self.assertTrue(all(e.used_by for e in result.used_exports.values()))
        self.assertTrue(all(not e.used_by for e in result.unused_exports))

    def test_input_facts_are_not_modified(self) -> None:
        facts = self.facts()
        self.run_analysis(facts)
        self.assertTrue(all(not e.used_by for e in facts.exports))

    def test_running_twice_gives_identical_results(self) -> None:
        facts = self.facts()
        first = self.run_analysis(facts).to_dict()
        second = self.run_analysis(facts).to_dict()
        self.assertEqual(first, second)

    def test_parse_errors_follow_resolution_errors(self) -> None:
        result = self.run_analysis(self.facts())
        self.assertEqual(result.errors[-1], "Parse Error: src/c.ts - boom")

    def test_duplicate_export_keys_are_collapsed(self) -> None:
        facts = ProjectFacts(exports=[self.export("src/b.ts", "foo"), self.export("src/b.ts", "foo", line=9)])
        result = self.run_analysis(facts)
        self.assertEqual(result.total_exports, 1)


class LivenessIntegrationTests(BuilderTestCase):
    files = (
        "app/api/users/route.ts",
        "app/api/users/[id]/route.ts",
        "app/dashboard/page.tsx",
        "app/layout.tsx",
        "components/widget.tsx",
        "hooks/useWidget.ts",
        "actions/save.ts",
        "lib/server.ts",
        "middleware.ts",
    )

    def test_route_handler_without_importers_is_used(self) -> None:
        route_file = "app/api/users/route.ts"
        facts = ProjectFacts(
            exports=[self.export(route_file, "GET"), self.export(route_file, "helper", line=10)],
            routes=[Route("/api/users", self.path(route_file), True, ["GET"])],
        )
        result = self.run_analysis(facts)
        self.assertEqual(self.used_names(result), {(os.path.join("app", "api", "users", "route.ts"), "GET")})
        get = next(iter(result.used_exports.values()))
        self.assertTrue(get.used_by[0].is_framework)

    def test_network_call_propagates_to_matching_method(self) -> None:
        route_file = "app/api/users/[id]/route.ts"
        caller = self.path("components/widget.tsx")
        facts = ProjectFacts(
            exports=[self.export(route_file, "GET"), self.export(route_file, "DELETE", line=8)],
            routes=[Route("/api/users/[id]", self.path(route_file), True, ["GET", "DELETE"])],
            dynamic_usages=[DynamicUsage(UsageKind.NETWORK_CALL, "/api/users/42", caller, 12, "DELETE")],
        )
        result = self.run_analysis(facts)
        by_name = {e.exported_name: e for e in result.used_exports.values()}
        self.assertIn(UsageSite(caller, 12), by_name["DELETE"].used_by)
        self.assertNotIn(UsageSite(caller, 12), by_name["GET"].used_by)
        self.assertEqual(len(result.routes[0].used_by), 1)

    def test_hook_without_calls_stays_unused(self) -> None:
        hook_file = "hooks/useWidget.ts"
        facts = ProjectFacts(
            exports=[self.export(hook_file, "useWidget")],
            hooks=[Hook("useWidget", self.path(hook_file), 1)],
        )
        result = self.run_analysis(facts)
        self.assertEqual(len(result.unused_exports), 1)
        self.assertEqual(result.used_exports, {})

    def test_hook_call_marks_hook_used(self) -> None:
        hook_file = "hooks/useWidget.ts"
        caller = self.path("components/widget.tsx")
        facts = ProjectFacts(
            exports=[self.export(hook_file, "useWidget")],
            hooks=[Hook("useWidget", self.path(hook_file), 1)],
            dynamic_usages=[DynamicUsage(UsageKind.HOOK_CALL, "useWidget", caller, 7)],
        )
        result = self.run_analysis(facts)
        hook = next(iter(result.used_exports.values()))
        self.assertEqual(hook.used_by, [UsageSite(caller, 7)])

    def test_page_and_layout_defaults_are_used(self) -> None:
        facts = ProjectFacts(
            exports=[
                self.export("app/dashboard/page.tsx", "default", is_default=True, local_name="Dashboard"),
                self.export("app/layout.tsx", "default", is_default=True),
                self.export("app/layout.tsx", "metadata", line=3),
                self.export("components/widget.tsx", "default", is_default=True),
            ],
        )
        result = self.run_analysis(facts)
        self.assertEqual(self.unused_names(result), {(os.path.join("components", "widget.tsx"), "default")})

    def test_server_action_used_by_form(self) -> None:
        facts = ProjectFacts(
            exports=[self.export("lib/server.ts", "createUser"), self.export("lib/server.ts", "internal", line=9)],
            server_actions=[ServerAction("createUser", self.path("lib/server.ts"), 1)],
            dynamic_usages=[DynamicUsage(UsageKind.FORM_ACTION, "createUser", self.path("app/dashboard/page.tsx"), 4)],
        )
        result = self.run_analysis(facts)
        action = next(iter(result.used_exports.values()))
        self.assertEqual(action.exported_name, "createUser")
        self.assertTrue(action.used_by[0].is_framework)
        self.assertIn(UsageSite(self.path("app/dashboard/page.tsx"), 4), action.used_by)
        self.assertEqual(self.unused_names(result), {(os.path.join("lib", "server.ts"), "internal")})

    def test_actions_directory_and_middleware(self) -> None:
        facts = ProjectFacts(
            exports=[
                self.export("actions/save.ts", "save"),
                self.export("middleware.ts", "middleware"),
                self.export("middleware.ts", "config", line=12),
            ],
        )
        result = self.run_analysis(facts)
        self.assertEqual(result.unused_exports, [])
        self.assertEqual(len(result.used_exports), 3)


class InterfaceTests(BuilderTestCase):
    files = ("types/a.ts", "types/b.ts", "src/use.ts")

    def test_same_named_interfaces_share_usages(self) -> None:
        site = UsageSite(self.path("src/use.ts"), 3)
        facts = ProjectFacts(
            interfaces=[
                Interface("Props", self.path("types/a.ts"), 1),
                Interface("Props", self.path("types/b.ts"), 1),
                Interface("Unused", self.path("types/b.ts"), 5),
            ],
            potential_interface_usages=[PotentialInterfaceUsage("Props", site),
                                        PotentialInterfaceUsage("Props", site)],
        )
        result = self.run_analysis(facts)
        self.assertEqual(len(result.interfaces), 3)
        props = [i for i in result.interfaces.values() if i.name == "Props"]
        self.assertEqual([i.used_by for i in props], [[site], [site]])
        unused = [i for i in result.interfaces.values() if i.name == "Unused"]
        self.assertEqual(unused[0].used_by, [])

    def test_merged_declarations_in_one_file_are_kept(self) -> None:
        site = UsageSite(self.path("src/use.ts"), 2)
        facts = ProjectFacts(
            interfaces=[
                Interface("Foo", self.path("types/a.ts"), 1),
                Interface("Foo", self.path("types/a.ts"), 5),
            ],
            potential_interface_usages=[PotentialInterfaceUsage("Foo", site)],
        )
        result = self.run_analysis(facts)
        foos = sorted(result.interfaces.values(), key=lambda i: i.declared_line)
        self.assertEqual([i.declared_line for i in foos], [1, 5])
        self.assertEqual([i.used_by for i in foos], [[site], [site]])


def test_match_export_prefers_declaration_order():
    anonymous = Export("default", "/p/x.ts", 1, is_default=True)
    named = Export("foo", "/p/x.ts", 2, local_name="foo")
    assert match_export("foo", [anonymous, named]) is anonymous
    assert match_export("foo", [named, anonymous]) is named


def test_match_export_ignores_other_named_defaults():
    default = Export("default", "/p/x.ts", 1, is_default=True, local_name="Page")
    assert match_export("Other", [default]) is None
    assert match_export("Page", [default]) is default


if __name__ == "__main__":
    unittest.main()
