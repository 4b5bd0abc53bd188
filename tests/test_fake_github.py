"""Tests of FakeGithub."""

import pytest
import requests

from .fake_github import FakeGitHub


# pylint: disable=missing-timeout

class TestRepos:
    def test_make_repo(self, fake_github):
        repo = fake_github.make_repo("an-org", "a-repo")
        assert repo.owner == "an-org"
        assert repo.repo == "a-repo"
        repo2 = fake_github.get_repo("an-org", "a-repo")
        assert repo == repo2

    @pytest.mark.parametrize("private", [True, False])
    def test_get_repo(self, fake_github, private):
        fake_github.make_repo("an-org", "a-repo", private=private)
        resp = requests.get("https://api.github.com/repos/an-org/a-repo")
        assert resp.status_code == 200
        rj = resp.json()
        assert rj["full_name"] == "an-org/a-repo"
        assert rj["private"] is private

    def test_no_such_repo(self, fake_github):
        resp = requests.get("https://api.github.com/repos/an-org/nope")
        assert resp.status_code == 404
        assert resp.json()["message"] == "Repo an-org/nope does not exist"


class TestPullRequests:
    def test_make_pull_request(self, fake_github):
        repo = fake_github.make_repo("an-org", "a-repo")
        pr = repo.make_pull_request(
            user="some-user",
            title="feat: a pull request",
            body="It's a good pull request, you should merge it.",
            draft=True,
        )
        resp = requests.get(f"https://api.github.com/repos/an-org/a-repo/pulls/{pr.number}")
        assert resp.status_code == 200
        prj = resp.json()
        assert prj["number"] == pr.number
        assert prj["node_id"] == pr.node_id
        assert prj["user"]["login"] == "some-user"
        assert prj["user"]["type"] == "User"
        assert prj["title"] == "feat: a pull request"
        assert prj["state"] == "open"
        assert prj["draft"] is True
        assert prj["merged"] is False
        assert prj["labels"] == []
        assert prj["base"]["repo"]["full_name"] == "an-org/a-repo"
        assert prj["html_url"] == f"https://github.com/an-org/a-repo/pull/{pr.number}"
        assert fake_github.pr_nodes[pr.node_id] is pr

    def test_no_such_pull_request(self, fake_github):
        fake_github.make_repo("an-org", "a-repo")
        resp = requests.get("https://api.github.com/repos/an-org/a-repo/pulls/99")
        assert resp.status_code == 404
        assert resp.json()["message"] == "Pull request an-org/a-repo #99 does not exist"

    @pytest.mark.parametrize("is_merged", [True, False])
    def test_close_pull_request(self, fake_github, is_merged):
        pr = fake_github.make_pull_request(number=3)
        pr.close(merge=is_merged)
        prj = requests.get("https://api.github.com/repos/an-org/a-repo/pulls/3").json()
        assert prj["state"] == "closed"
        assert prj["merged"] == is_merged

    def test_reviews(self, fake_github):
        pr = fake_github.make_pull_request(number=3)
        pr.add_review("friend")
        pr.add_review("critic", state="CHANGES_REQUESTED")
        pr.add_review(None)
        resp = requests.get("https://api.github.com/repos/an-org/a-repo/pulls/3/reviews")
        assert resp.status_code == 200
        summary = [(r["user"]["login"] if r["user"] else None, r["state"]) for r in resp.json()]
        assert summary == [("friend", "APPROVED"), ("critic", "CHANGES_REQUESTED"), (None, "APPROVED")]


class TestRepoLabels:
    def test_default_labels(self, fake_github):
        fake_github.make_repo("an-org", "a-repo")
        resp = requests.get("https://api.github.com/repos/an-org/a-repo/labels")
        assert [lbl["name"] for lbl in resp.json()] == ["bug", "documentation", "enhancement"]

    def test_create_label(self, fake_github):
        repo = fake_github.make_repo("an-org", "a-repo")
        resp = requests.post(
            "https://api.github.com/repos/an-org/a-repo/labels",
            json={"name": "qa:running", "color": "FFA500", "description": "Running"},
        )
        assert resp.status_code == 201
        assert repo.get_label("qa:running").color == "FFA500"

        resp = requests.post(
            "https://api.github.com/repos/an-org/a-repo/labels",
            json={"name": "qa:running", "color": "000000", "description": "Again"},
        )
        assert resp.status_code == 422
        assert resp.json()["errors"][0]["code"] == "already_exists"
        assert repo.get_label("qa:running").color == "FFA500"

    def test_update_label(self, fake_github):
        repo = fake_github.make_repo("an-org", "a-repo")
        repo.add_label(name="qa:failed", color="ededed")
        resp = requests.patch(
            "https://api.github.com/repos/an-org/a-repo/labels/qa%3Afailed",
            json={"color": "CB2431", "description": "QA workflow failed"},
        )
        assert resp.status_code == 200
        label = repo.get_label("qa:failed")
        assert label.color == "CB2431"
        assert label.description == "QA workflow failed"

    def test_update_missing_label(self, fake_github):
        fake_github.make_repo("an-org", "a-repo")
        resp = requests.patch("https://api.github.com/repos/an-org/a-repo/labels/nope", json={"color": "000000"})
        assert resp.status_code == 404


class TestPullRequestLabels:
    def test_adding_labels_with_api(self, fake_github):
        pr = fake_github.make_pull_request(number=3, labels=["bug"])
        resp = requests.post(
            "https://api.github.com/repos/an-org/a-repo/issues/3/labels",
            json={"labels": ["new label", "bug", "another label"]},
        )
        assert resp.status_code == 200
        # Order is kept, and duplicates are ignored.
        assert pr.labels == ["bug", "new label", "another label"]
        assert pr.repo.get_label("new label").color == "ededed"
        assert pr.repo.get_label("bug").color == "d73a4a"

        resp = requests.get("https://api.github.com/repos/an-org/a-repo/issues/3/labels")
        assert [lbl["name"] for lbl in resp.json()] == ["bug", "new label", "another label"]

    def test_removing_labels_with_api(self, fake_github):
        pr = fake_github.make_pull_request(number=3, labels=["qa:running", "bug"])
        resp = requests.delete("https://api.github.com/repos/an-org/a-repo/issues/3/labels/qa%3Arunning")
        assert resp.status_code == 200
        assert [lbl["name"] for lbl in resp.json()] == ["bug"]
        assert pr.labels == ["bug"]

        resp = requests.delete("https://api.github.com/repos/an-org/a-repo/issues/3/labels/qa%3Arunning")
        assert resp.status_code == 404

    def test_labels_in_pull_request(self, fake_github):
        fake_github.make_pull_request(number=3, labels=["status:draft", "bug"])
        prj = requests.get("https://api.github.com/repos/an-org/a-repo/pulls/3").json()
        assert [(lbl["name"], lbl["color"]) for lbl in prj["labels"]] == [
            ("status:draft", "ededed"),
            ("bug", "d73a4a"),
        ]


class TestComments:
    def test_listing_comments(self, fake_github):
        pr = fake_github.make_pull_request(number=3)
        assert requests.get("https://api.github.com/repos/an-org/a-repo/issues/3/comments").json() == []

        pr.add_comment(user="tusbar", body="This is my comment")
        pr.add_comment(user="feanil", body="I love this change!")
        comments = requests.get("https://api.github.com/repos/an-org/a-repo/issues/3/comments").json()
        assert [(c["user"]["login"], c["body"]) for c in comments] == [
            ("tusbar", "This is my comment"),
            ("feanil", "I love this change!"),
        ]

    def test_posting_comments(self, fake_github):
        pr = fake_github.make_pull_request(number=3)
        resp = requests.post(
            "https://api.github.com/repos/an-org/a-repo/issues/3/comments",
            json={"body": "<!-- slack-creating-lock -->"},
        )
        assert resp.status_code == 201
        cj = resp.json()
        assert cj["user"]["login"] == "pr-actions-bot"
        com, = pr.list_comments()
        assert com.id == cj["id"]
        assert com.body == "<!-- slack-creating-lock -->"

    def test_bad_markdown_is_refused(self, fake_github):
        fake_github.make_pull_request(number=3)
        with pytest.raises(ValueError, match="HTML comment"):
            requests.post(
                "https://api.github.com/repos/an-org/a-repo/issues/3/comments",
                json={"body": "Hello <!-- slack-ts:1.2 -->"},
            )

    def test_editing_comments(self, fake_github):
        pr = fake_github.make_pull_request(number=3)
        com = pr.add_comment(body="Before")
        resp = requests.patch(
            f"https://api.github.com/repos/an-org/a-repo/issues/comments/{com.id}",
            json={"body": "After"},
        )
        assert resp.status_code == 200
        assert pr.list_comments()[0].body == "After"

    def test_deleting_comments(self, fake_github):
        pr = fake_github.make_pull_request(number=3)
        com = pr.add_comment(body="Doomed")
        keep = pr.add_comment(body="Keeper")
        resp = requests.delete(f"https://api.github.com/repos/an-org/a-repo/issues/comments/{com.id}")
        assert resp.status_code == 204
        assert pr.list_comments() == [keep]

        resp = requests.delete(f"https://api.github.com/repos/an-org/a-repo/issues/comments/{com.id}")
        assert resp.status_code == 404


class TestAutoMerge:
    MUTATION = "mutation EnableAutoMerge { stuff }"

    def enable(self, node_id, method="SQUASH"):
        resp = requests.post(
            "https://api.github.com/graphql",
            json={"query": self.MUTATION, "variables": {"pullRequestId": node_id, "mergeMethod": method}},
        )
        assert resp.status_code == 200
        return resp.json()

    def test_enable(self, fake_github):
        pr = fake_github.make_pull_request(number=3)
        data = self.enable(pr.node_id, "MERGE")
        assert data["data"]["enablePullRequestAutoMerge"]["pullRequest"]["autoMergeRequest"]["mergeMethod"] == "MERGE"
        assert pr.auto_merge_method == "MERGE"

    def test_already_enabled(self, fake_github):
        pr = fake_github.make_pull_request(number=3)
        self.enable(pr.node_id)
        data = self.enable(pr.node_id, "REBASE")
        assert "already enabled" in data["errors"][0]["message"]
        assert pr.auto_merge_method == "SQUASH"

    def test_not_allowed(self, fake_github):
        pr = fake_github.make_pull_request(number=3)
        pr.repo.allow_auto_merge = False
        data = self.enable(pr.node_id)
        assert "Auto-merge is not allowed" in data["errors"][0]["message"]

    def test_unknown_node(self, fake_github):
        data = self.enable("PR_nope")
        assert data["data"] is None
        assert "PR_nope" in data["errors"][0]["message"]

    def test_requests_made_sees_mutations(self, fake_github):
        pr = fake_github.make_pull_request(number=3)
        self.enable(pr.node_id)
        assert fake_github.requests_made(method="mutation") == [("/graphql", "mutation")]
        assert fake_github.writes_made() == [("/graphql", "mutation")]


def test_failing_requests(fake_github):
    pr = fake_github.make_pull_request(number=3, labels=["bug"])
    fake_github.fail_requests("DELETE", r"/labels/", status_code=503, times=1)
    resp = requests.delete("https://api.github.com/repos/an-org/a-repo/issues/3/labels/bug")
    assert resp.status_code == 503
    assert pr.labels == ["bug"]
    resp = requests.delete("https://api.github.com/repos/an-org/a-repo/issues/3/labels/bug")
    assert resp.status_code == 200
    assert pr.labels == []


def test_separate_fakes_are_separate(requests_mocker):
    one = FakeGitHub(login="one-bot")
    one.install_mocks(requests_mocker)
    one.make_repo("an-org", "a-repo")
    assert FakeGitHub(login="two-bot").repos == {}
