"""Tests for IntegrationRepository."""

import pytest

from src.models.integration import GitLabIntegration, GoogleIntegration, SlackIntegration
from src.repositories.integration_repo import IntegrationRepository, instance_origin


def slack(user_id="user-1", team_id="T1", **kw) -> SlackIntegration:
    return SlackIntegration(
        user_id=user_id, access_token="xoxp-1", team_id=team_id, slack_user_id="U1", **kw
    )


def gitlab(user_id="user-1", url="https://gitlab.com", **kw) -> GitLabIntegration:
    return GitLabIntegration(
        user_id=user_id, access_token="glpat-1", gitlab_url=url, username="alice", **kw
    )


class TestInstanceOrigin:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://gitlab.com/group/project", "https://gitlab.com"),
            ("HTTPS://GitLab.Example.com:8443/a/b", "https://gitlab.example.com:8443"),
            ("https://gitlab.com/", "https://gitlab.com"),
        ],
    )
    def test_normalizes(self, url, expected):
        assert instance_origin(url) == expected


class TestSlack:
    async def test_upsert_replaces_row(self, integration_repo: IntegrationRepository):
        await integration_repo.upsert_slack(slack(team_name="Old"))
        await integration_repo.upsert_slack(slack(team_name="New"))

        stored = await integration_repo.get_slack("user-1")
        assert stored.team_name == "New"
        assert stored.slack_user_id == "U1"

    async def test_find_by_team(self, integration_repo: IntegrationRepository):
        await integration_repo.upsert_slack(slack())

        assert (await integration_repo.find_slack_by_team("T1")).user_id == "user-1"
        assert await integration_repo.find_slack_by_team("T2") is None


class TestGitLab:
    async def test_stores_url_without_trailing_slash(
        self, integration_repo: IntegrationRepository
    ):
        await integration_repo.upsert_gitlab(gitlab(url="https://gitlab.com/"))

        assert (await integration_repo.get_gitlab("user-1")).gitlab_url == "https://gitlab.com"

    async def test_find_by_origin_is_exact(self, integration_repo: IntegrationRepository):
        await integration_repo.upsert_gitlab(gitlab(user_id="a"))
        await integration_repo.upsert_gitlab(gitlab(user_id="b"))
        await integration_repo.upsert_gitlab(
            gitlab(user_id="c", url="https://gitlab.com.evil.example")
        )

        found = await integration_repo.find_gitlab_by_origin(
            "https://gitlab.com/group/project"
        )

        assert sorted(i.user_id for i in found) == ["a", "b"]


class TestShared:
    async def test_delete(self, integration_repo: IntegrationRepository):
        await integration_repo.upsert_google(
            GoogleIntegration(user_id="user-1", access_token="ya29", email="a@x.com")
        )

        assert await integration_repo.delete("google", "user-1") is True
        assert await integration_repo.delete("google", "user-1") is False
        assert await integration_repo.get_google("user-1") is None

    async def test_unknown_source(self, integration_repo: IntegrationRepository):
        with pytest.raises(ValueError, match="Unknown integration source"):
            await integration_repo.delete("jira", "user-1")

    async def test_touch_last_sync(self, integration_repo: IntegrationRepository):
        await integration_repo.upsert_slack(slack())
        assert (await integration_repo.get_slack("user-1")).last_sync_at is None

        await integration_repo.touch_last_sync("slack", "user-1")

        assert (await integration_repo.get_slack("user-1")).last_sync_at is not None

    async def test_connected_user_ids_are_unique(
        self, integration_repo: IntegrationRepository
    ):
        await integration_repo.upsert_slack(slack(user_id="b"))
        await integration_repo.upsert_gitlab(gitlab(user_id="b"))
        await integration_repo.upsert_google(
            GoogleIntegration(user_id="a", access_token="ya29")
        )

        assert await integration_repo.list_connected_user_ids() == ["a", "b"]
