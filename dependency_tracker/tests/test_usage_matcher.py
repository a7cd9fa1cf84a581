"""
Tests for matching fetch targets, hook calls and form actions to declarations.
"""

from dependency_tracker.core.entities import DynamicUsage, Hook, Route, ServerAction, UsageKind
from dependency_tracker.graph.usage_matcher import (
    UsageMatcher,
    normalize_target_path,
    route_pattern,
)


def route(path):
    return Route(path, f"/p/app{path}/route.ts", True, ["GET"])


def test_dynamic_segment_matches_one_segment():
    """[id] matches a single segment and any trailing path."""
    pattern = route_pattern("/api/users/[id]")
    assert pattern.match("/api/users/42")
    assert pattern.match("/api/users/42/posts")
    assert not pattern.match("/api/users")
    assert not pattern.match("/api/posts/42")
    print("Dynamic Segment: PASSED")


def test_catch_all_segments():
    catch_all = route_pattern("/docs/[...slug]")
    assert catch_all.match("/docs/a")
    assert catch_all.match("/docs/a/b/c")
    assert not catch_all.match("/docs")

    optional = route_pattern("/shop/[[...slug]]")
    assert optional.match("/shop")
    assert optional.match("/shop/a/b")
    assert not optional.match("/shopfoo")
    assert not optional.match("/shop-v2/a")
    print("Catch-all Segments: PASSED")


def test_literal_characters_are_escaped():
    pattern = route_pattern("/api/v1.0/[id]")
    assert pattern.match("/api/v1.0/7")
    assert not pattern.match("/api/v1x0/7")


def test_normalize_target_path():
    assert normalize_target_path("https://example.com/api/users/?page=2#top") == "/api/users"
    assert normalize_target_path("api/users") == "/api/users"
    assert normalize_target_path("/") == "/"


def test_network_call_matching():
    """/api/users/42 reaches [id] but never a sibling dynamic route."""
    users_id = route("/api/users/[id]")
    posts_id = route("/api/posts/[id]")
    matcher = UsageMatcher([posts_id, users_id], [], [])
    assert matcher.match_route("/api/users/42") is users_id
    assert matcher.match_route("/api/comments/1") is None

    users = route("/api/users")
    matcher = UsageMatcher([users, users_id], [], [])
    # prefix match on the shorter route comes first in list order
    assert matcher.match_route("/api/users/42") is users
    assert matcher.match_route("/api/users") is users
    print("Network Call Matching: PASSED")


def test_root_route_is_not_a_prefix_of_everything():
    home = Route("/", "/p/app/page.tsx")
    matcher = UsageMatcher([home], [], [])
    assert matcher.match_route("/") is home
    assert matcher.match_route("/api/anything") is None


def test_optional_catch_all_does_not_match_sibling_paths():
    api = route("/api/[[...slug]]")
    matcher = UsageMatcher([api], [], [])
    assert matcher.match_route("/api") is api
    assert matcher.match_route("/api/a/b") is api
    assert matcher.match_route("/apifoo") is None
    assert matcher.match_route("/api-v2/x") is None


def test_attach_by_kind():
    users = route("/api/users")
    hook = Hook("useCart", "/p/hooks/useCart.ts", 1)
    action = ServerAction("saveCart", "/p/actions/cart.ts", 1)
    usages = [
        DynamicUsage(UsageKind.NETWORK_CALL, "/api/users", "/p/a.tsx", 1, "GET"),
        DynamicUsage(UsageKind.HOOK_CALL, "useCart", "/p/a.tsx", 2),
        DynamicUsage(UsageKind.FORM_ACTION, "saveCart", "/p/a.tsx", 3),
        DynamicUsage(UsageKind.ACTION_CALL, "saveCart", "/p/a.tsx", 4),
        DynamicUsage(UsageKind.HOOK_CALL, "useState", "/p/a.tsx", 5),
        # names do not cross kinds
        DynamicUsage(UsageKind.HOOK_CALL, "saveCart", "/p/a.tsx", 6),
    ]
    matched = UsageMatcher([users], [hook], [action]).attach(usages)
    assert matched == 4
    assert [u.line for u in users.used_by] == [1]
    assert [u.line for u in hook.used_by] == [2]
    assert [u.line for u in action.used_by] == [3, 4]


def run_tests():
    """Run all tests"""
    print("\n" + "=" * 50)
    print("Usage Matcher Tests")
    print("=" * 50 + "\n")

    test_dynamic_segment_matches_one_segment()
    test_catch_all_segments()
    test_literal_characters_are_escaped()
    test_normalize_target_path()
    test_network_call_matching()
    test_root_route_is_not_a_prefix_of_everything()
    test_optional_catch_all_does_not_match_sibling_paths()
    test_attach_by_kind()

    print("\n" + "=" * 50)
    print("ALL TESTS PASSED!")
    print("=" * 50)


if __name__ == "__main__":
    run_tests()
