"""Repository lifecycle handlers and the scaffolded-project heuristic."""

from __future__ import annotations

import pytest
from conftest import FakeGitHub, raw_repo
from scaffold_mcp import repositories
from scaffold_mcp.github_service import ServiceResult
from scaffold_mcp.permissions import MANAGED_OWNER_MISSING
from scaffold_mcp.repositories import is_scaffolded_project, to_repository


@pytest.mark.parametrize(
    ("name", "description", "expected"),
    [
        ("project-foo", None, True),
        ("my-project-x", None, True),
        ("scaffolded-site", None, True),
        ("generated-api", None, True),
        ("shop-project", None, True),
        ("portfolio-app", None, True),
        ("landing-demo", None, True),
        ("demo1700000000000", None, True),
        ("PROJECT-upper", None, True),
        ("my-repo", "Auto-generated scaffold", True),
        ("my-repo", "A generated project for testing", True),
        ("my-repo", "created by the bootstrapper", True),
        ("my-repo", None, False),
        ("my-repo", "", False),
        ("dotfiles", "My personal configuration", False),
        ("build-17000000000001", None, False),
        ("application", None, False),
    ],
)
def test_is_scaffolded_project(name: str, description: str | None, expected: bool) -> None:
    assert is_scaffolded_project(name, description) is expected


def test_to_repository_projects_github_payload() -> None:
    view = to_repository(raw_repo("bots-org", "project-foo", "demo", private=True))
    assert view == {
        "id": "bots-org/project-foo",
        "name": "project-foo",
        "fullName": "bots-org/project-foo",
        "url": "https://github.com/bots-org/project-foo",
        "description": "demo",
        "private": True,
        "createdAt": "2024-01-01T00:00:00Z",
        "updatedAt": "2024-02-01T00:00:00Z",
        "isScaffoldedProject": True,
    }


@pytest.mark.asyncio
async def test_list_repositories_falls_back_to_authenticated_user(make_runtime) -> None:
    github = FakeGitHub(login="alice", repositories=[raw_repo("alice", "project-foo"), raw_repo("alice", "notes")])
    runtime = make_runtime(github, managed_owner=None)

    res = await repositories.list_repositories(runtime, {})

    assert res["success"] is True
    assert res["owner"] == "alice"
    assert res["total"] == 2
    assert res["message"] == "Found 2 repositories"
    assert [r["isScaffoldedProject"] for r in res["repositories"]] == [True, False]
    (options,) = github.called("list_repositories")[0]
    assert options.owner == "alice"


@pytest.mark.asyncio
async def test_list_repositories_prefers_explicit_then_managed_owner(make_runtime) -> None:
    github = FakeGitHub()
    runtime = make_runtime(github, managed_owner="bots-org")

    res = await repositories.list_repositories(runtime, {})
    assert res["owner"] == "bots-org"

    res = await repositories.list_repositories(runtime, {"owner": "octo", "nameFilter": "demo", "type": "private"})
    assert res["owner"] == "octo"
    (options,) = github.called("list_repositories")[-1]
    assert options.name_filter == "demo"
    assert options.type == "private"
    assert github.called("get_authenticated_user") == []


@pytest.mark.asyncio
async def test_list_repositories_fails_when_owner_cannot_be_determined(make_runtime) -> None:
    runtime = make_runtime(FakeGitHub(login=None), managed_owner=None)

    res = await repositories.list_repositories(runtime, {})

    assert res["success"] is False
    assert res["message"].startswith("Unable to determine GitHub owner")


@pytest.mark.asyncio
async def test_list_repositories_reports_missing_token(make_runtime) -> None:
    github = FakeGitHub()
    res = await repositories.list_repositories(make_runtime(github, token=None), {})

    assert res == {"success": False, "message": "Missing required environment variables: GITHUB_TOKEN"}
    assert github.calls == []


@pytest.mark.asyncio
async def test_list_repositories_passes_service_failure_through(make_runtime) -> None:
    github = FakeGitHub()
    github.overrides["list_repositories"] = ServiceResult(False, "Failed to list repositories: rate limited")

    res = await repositories.list_repositories(make_runtime(github), {})

    assert res == {"success": False, "message": "Failed to list repositories: rate limited"}


@pytest.mark.asyncio
async def test_get_repository_requires_owner_and_repo(make_runtime) -> None:
    github = FakeGitHub()
    res = await repositories.get_repository(make_runtime(github, token=None), {"owner": "octo"})

    assert res == {"success": False, "message": "Owner and repository name are required"}
    assert github.calls == []


@pytest.mark.asyncio
async def test_get_repository_returns_view(make_runtime) -> None:
    github = FakeGitHub(repositories=[raw_repo("octo", "hello-app")])
    res = await repositories.get_repository(make_runtime(github), {"owner": "octo", "repo": "hello-app"})

    assert res["success"] is True
    assert res["repository"]["fullName"] == "octo/hello-app"
    assert res["repository"]["isScaffoldedProject"] is True

    res = await repositories.get_repository(make_runtime(github), {"owner": "octo", "repo": "missing"})
    assert res == {"success": False, "message": "Repository octo/missing not found"}


@pytest.mark.asyncio
async def test_delete_outside_managed_owner_never_reaches_github(make_runtime) -> None:
    github = FakeGitHub(login="alice")
    runtime = make_runtime(github, managed_owner="bots-org")

    res = await repositories.delete_repository(runtime, {"owner": "victim-org", "repo": "prod"})

    assert res["success"] is False
    assert res["message"] == (
        "Not enough permission to delete repositories under 'victim-org'. "
        "Only repositories under 'bots-org' can be deleted."
    )
    assert github.called("delete_repository") == []


@pytest.mark.asyncio
async def test_delete_of_own_repositories_is_refused_before_remote_delete(make_runtime) -> None:
    github = FakeGitHub(login="alice", repositories=[raw_repo("alice", "homework")])
    runtime = make_runtime(github, managed_owner="bots-org")

    res = await repositories.delete_repository(runtime, {"owner": "alice", "repo": "homework"})

    assert res["success"] is False
    assert "Only repositories under 'bots-org' can be deleted" in res["message"]
    assert github.called("delete_repository") == []
    assert github.called("get_repository") == []


@pytest.mark.asyncio
async def test_delete_is_refused_for_personal_account(make_runtime) -> None:
    github = FakeGitHub(login="alice")
    runtime = make_runtime(github, managed_owner="alice")

    res = await repositories.delete_repository(runtime, {"owner": "alice", "repo": "project-1"})

    assert res["success"] is False
    assert "cannot be the same as the authenticated user" in res["message"]
    assert github.called("delete_repository") == []


@pytest.mark.asyncio
async def test_delete_requires_managed_owner(make_runtime) -> None:
    github = FakeGitHub()
    res = await repositories.delete_repository(make_runtime(github, managed_owner=None), {"owner": "a", "repo": "b"})

    assert res == {"success": False, "message": MANAGED_OWNER_MISSING}
    assert github.called("delete_repository") == []


@pytest.mark.asyncio
async def test_delete_reports_missing_token_before_guard(make_runtime) -> None:
    github = FakeGitHub()
    res = await repositories.delete_repository(make_runtime(github, token=None), {"owner": "bots-org", "repo": "x"})

    assert res["message"] == "Missing required environment variables: GITHUB_TOKEN"
    assert github.calls == []


@pytest.mark.asyncio
async def test_delete_within_managed_owner_succeeds(make_runtime) -> None:
    github = FakeGitHub(login="alice")
    runtime = make_runtime(github, managed_owner="bots-org")

    res = await repositories.delete_repository(runtime, {"owner": "bots-org", "repo": "project-old"})

    assert res == {"success": True, "message": "Repository 'bots-org/project-old' deleted successfully"}
    assert github.called("delete_repository") == [("bots-org", "project-old")]


@pytest.mark.asyncio
async def test_delete_surfaces_github_failure(make_runtime) -> None:
    github = FakeGitHub(login="alice")
    github.overrides["delete_repository"] = ServiceResult(False, "Cannot delete repository: Repository bots-org/x not found")

    res = await repositories.delete_repository(make_runtime(github), {"owner": "bots-org", "repo": "x"})

    assert res == {"success": False, "message": "Cannot delete repository: Repository bots-org/x not found"}


@pytest.mark.asyncio
async def test_validate_permissions_reports_without_deleting(make_runtime) -> None:
    github = FakeGitHub(login="alice")
    runtime = make_runtime(github, managed_owner="bots-org")

    allowed = await repositories.validate_repository_permissions(runtime, {"owner": "bots-org"})
    denied = await repositories.validate_repository_permissions(runtime, {"owner": "other"})

    assert allowed["success"] is True and allowed["canDelete"] is True
    assert allowed["githubOwner"] == "bots-org"
    assert allowed["authenticatedUser"] == "alice"
    assert denied["success"] is True and denied["canDelete"] is False
    assert "Not enough permission" in denied["message"]
    assert github.called("delete_repository") == []


@pytest.mark.asyncio
async def test_validate_permissions_without_managed_owner(make_runtime) -> None:
    res = await repositories.validate_repository_permissions(make_runtime(managed_owner=None), {"owner": "x"})

    assert res == {"success": False, "message": MANAGED_OWNER_MISSING, "canDelete": False}


@pytest.mark.asyncio
async def test_details_returns_partial_data_when_parts_fail(make_runtime) -> None:
    github = FakeGitHub(repositories=[raw_repo("octo", "demo")])
    github.overrides["get_repository_languages"] = ServiceResult(False, "boom")
    github.overrides["get_repository_topics"] = RuntimeError("connection reset")

    res = await repositories.get_repository_details(make_runtime(github), {"owner": "octo", "repo": "demo"})

    assert res["success"] is True
    assert res["unavailable"] == ["languages", "topics"]
    assert res["data"]["stars"] == 3
    assert res["data"]["license"] == "MIT License"
    assert res["data"]["readme"] == "# Hello"
    assert "languages" not in res["data"]


@pytest.mark.asyncio
async def test_details_computes_language_percentages(make_runtime) -> None:
    github = FakeGitHub(repositories=[raw_repo("octo", "demo")])

    res = await repositories.get_repository_details(make_runtime(github), {"owner": "octo", "repo": "demo"})

    assert res["unavailable"] == []
    assert res["data"]["languagesPercentages"] == {"Python": 75, "Shell": 25}
    assert res["data"]["topics"] == ["cli", "mcp"]


@pytest.mark.asyncio
async def test_details_fails_when_every_part_fails(make_runtime) -> None:
    github = FakeGitHub()
    for name in ("get_repository_languages", "get_repository_topics", "get_repository_readme"):
        github.overrides[name] = ServiceResult(False, "nope")

    res = await repositories.get_repository_details(make_runtime(github), {"owner": "octo", "repo": "gone"})

    assert res["success"] is False
    assert res["unavailable"] == ["repository", "languages", "topics", "readme"]
