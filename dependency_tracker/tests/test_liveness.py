import os
import unittest

from dependency_tracker.config import LivenessSettings
from dependency_tracker.core.entities import (
    DynamicUsage, Export, Hook, Route, ServerAction, UsageKind, UsageSite
)
from dependency_tracker.liveness import LivenessContext, LivenessRuleEngine
from dependency_tracker.liveness.rules import (
    FRAMEWORK_SITE,
    ActionsDirectoryRule,
    MiddlewareRule,
    PageComponentRule,
    RouteHandlerRule,
    SpecialExportRule,
    route_tree_root,
)

ROOT = os.path.join(os.sep, "project")


def path(rel):
    return os.path.join(ROOT, *rel.split("/"))


def make_context(exports, routes=None, server_actions=None, hooks=None):
    by_file = {}
    for exp in exports:
        by_file.setdefault(exp.declaring_file, []).append(exp)
    return LivenessContext(ROOT, by_file, routes or [], server_actions or [], hooks or [])


def named(rel, name, line=1):
    return Export(name, path(rel), line, local_name=name)


def default(rel, local_name=None):
    return Export("default", path(rel), 1, is_default=True, local_name=local_name)


class RouteHandlerRuleTests(unittest.TestCase):
    def test_exported_methods_are_marked(self) -> None:
        get, helper = named("app/api/x/route.ts", "GET"), named("app/api/x/route.ts", "helper", 5)
        route = Route("/api/x", path("app/api/x/route.ts"), True, ["GET"])
        marked = RouteHandlerRule().apply(make_context([get, helper], routes=[route]))
        self.assertEqual(marked, 1)
        self.assertEqual(get.used_by, [FRAMEWORK_SITE])
        self.assertEqual(helper.used_by, [])

    def test_unknown_methods_fall_back_to_all_http_methods(self) -> None:
        post = named("app/api/x/route.ts", "POST")
        route = Route("/api/x", path("app/api/x/route.ts"), True, None)
        RouteHandlerRule().apply(make_context([post], routes=[route]))
        self.assertTrue(post.is_used)

    def test_page_routes_have_no_handlers(self) -> None:
        get = named("app/x/page.tsx", "GET")
        route = Route("/x", path("app/x/page.tsx"), False, None)
        RouteHandlerRule().apply(make_context([get], routes=[route]))
        self.assertFalse(get.is_used)

    def test_usage_without_method_goes_to_every_handler(self) -> None:
        get, post = named("app/api/x/route.ts", "GET"), named("app/api/x/route.ts", "POST", 9)
        route = Route("/api/x", path("app/api/x/route.ts"), True, ["GET", "POST"])
        route.used_by.append(DynamicUsage(UsageKind.NETWORK_CALL, "/api/x", path("lib/client.ts"), 3))
        RouteHandlerRule().apply(make_context([get, post], routes=[route]))
        site = UsageSite(path("lib/client.ts"), 3)
        self.assertIn(site, get.used_by)
        self.assertIn(site, post.used_by)


class ConventionRuleTests(unittest.TestCase):
    def test_page_component_rule(self) -> None:
        page = default("app/blog/page.tsx", "BlogPage")
        loading = default("src/app/loading.tsx")
        helper = default("app/blog/helper.tsx")
        legacy = default("pages/about.tsx")
        outside = default("components/page.tsx")
        PageComponentRule().apply(make_context([page, loading, helper, legacy, outside]))
        self.assertTrue(page.is_used)
        self.assertTrue(loading.is_used)
        self.assertTrue(legacy.is_used)
        self.assertFalse(helper.is_used)
        self.assertFalse(outside.is_used)

    def test_named_page_exports_are_not_pages(self) -> None:
        exp = named("app/page.tsx", "Widget")
        PageComponentRule().apply(make_context([exp]))
        self.assertFalse(exp.is_used)

    def test_special_exports(self) -> None:
        metadata = named("app/page.tsx", "metadata")
        revalidate = named("src/app/feed/page.tsx", "revalidate")
        props = named("pages/index.tsx", "getServerSideProps")
        elsewhere = named("lib/seo.ts", "generateMetadata")
        SpecialExportRule().apply(make_context([metadata, revalidate, props, elsewhere]))
        self.assertTrue(metadata.is_used)
        self.assertTrue(revalidate.is_used)
        self.assertTrue(props.is_used)
        self.assertFalse(elsewhere.is_used)

    def test_actions_directory(self) -> None:
        inside = named("app/actions/user.ts", "updateUser")
        named_file = named("lib/actions.ts", "notADirectory")
        ActionsDirectoryRule().apply(make_context([inside, named_file]))
        self.assertTrue(inside.is_used)
        self.assertFalse(named_file.is_used)

    def test_middleware_at_root_or_src(self) -> None:
        root_mw = named("middleware.ts", "middleware")
        src_mw = named("src/instrumentation.ts", "register")
        nested = named("lib/middleware.ts", "middleware")
        MiddlewareRule().apply(make_context([root_mw, src_mw, nested]))
        self.assertTrue(root_mw.is_used)
        self.assertTrue(src_mw.is_used)
        self.assertFalse(nested.is_used)


class EngineTests(unittest.TestCase):
    def exports(self):
        return [
            named("app/api/x/route.ts", "GET"),
            default("app/page.tsx"),
            named("actions/save.ts", "save"),
            named("hooks/useThing.ts", "useThing"),
            named("lib/server.ts", "submit"),
        ]

    def context(self, exports):
        return make_context(
            exports,
            routes=[Route("/api/x", path("app/api/x/route.ts"), True, ["GET"])],
            server_actions=[ServerAction("submit", path("lib/server.ts"), 1)],
            hooks=[Hook("useThing", path("hooks/useThing.ts"), 1)],
        )

    def test_default_rules(self) -> None:
        exports = self.exports()
        marked = LivenessRuleEngine().apply(self.context(exports))
        self.assertEqual(marked["route-handlers"], 1)
        self.assertEqual(marked["server-actions"], 1)
        self.assertEqual(marked["hook-usage"], 0)
        self.assertEqual(marked["page-components"], 1)
        self.assertEqual(marked["actions-directory"], 1)
        self.assertEqual([e.exported_name for e in exports if not e.is_used], ["useThing"])

    def test_applying_twice_changes_nothing(self) -> None:
        exports = self.exports()
        context = self.context(exports)
        engine = LivenessRuleEngine()
        engine.apply(context)
        before = [list(e.used_by) for e in exports]
        second = engine.apply(context)
        self.assertEqual([list(e.used_by) for e in exports], before)
        self.assertEqual(sum(second.values()), 0)

    def test_disabled_rules_and_extra_names(self) -> None:
        settings = LivenessSettings(
            disabled_rules=["actions-directory", "no-such-rule"],
            page_file_stems=["opengraph-image"],
        )
        engine = LivenessRuleEngine.from_settings(settings)
        self.assertNotIn("actions-directory", engine.get_rules_summary())

        image = default("app/opengraph-image.tsx")
        action = named("actions/save.ts", "save")
        engine.apply(make_context([image, action]))
        self.assertTrue(image.is_used)
        self.assertFalse(action.is_used)

    def test_hook_call_propagates(self) -> None:
        hook_export = named("hooks/useThing.ts", "useThing")
        hook = Hook("useThing", path("hooks/useThing.ts"), 1)
        hook.used_by.append(DynamicUsage(UsageKind.HOOK_CALL, "useThing", path("app/page.tsx"), 6))
        LivenessRuleEngine().apply(make_context([hook_export], hooks=[hook]))
        self.assertEqual(hook_export.used_by, [UsageSite(path("app/page.tsx"), 6)])


def test_route_tree_root_prefers_longest():
    assert route_tree_root(["src", "app", "page.tsx"]) == "src/app"
    assert route_tree_root(["app", "page.tsx"]) == "app"
    assert route_tree_root(["application", "page.tsx"]) is None


if __name__ == "__main__":
    unittest.main()
