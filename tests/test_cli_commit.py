"""Tests for the ``commit`` command."""

import io
import json
from pathlib import Path
from unittest.mock import patch

import pytest
import requests
from click.testing import CliRunner

import ai_commit.cli as cli
from ai_commit.config.loader import DEFAULT_CONFIG
from ai_commit.llm.errors import GenerationError, ParseError
from ai_commit.vcs.git_client import BranchInfo, GitError, RepoStatus, TrackingInfo


REPLY = '{"type":"feat","scope":"auth","description":"add token refresh","body":null,"breaking_change":null}'
DIFF = "diff --git a/a.py b/a.py\n--- a/a.py\n+++ b/a.py\n@@ -1 +1,2 @@\n-old\n+new\n+more\n"


class FakeGitClient:
    instances = []
    root = Path("/repo")
    status = RepoStatus(modified_files=["a.py"])
    diff = DIFF
    commit_error = None

    @staticmethod
    def find_repo_root(start):
        return FakeGitClient.root

    def __init__(self, root):
        self.repo_root = root
        self.staged = False
        self.commits = []
        FakeGitClient.instances.append(self)

    def get_status(self):
        return FakeGitClient.status

    def get_combined_diff(self):
        return FakeGitClient.diff

    def get_diff(self, staged=False):
        return FakeGitClient.diff

    def get_branch_info(self):
        return BranchInfo(name="feature/x", tracking_info=TrackingInfo(upstream="origin/feature/x"))

    def stage_all(self):
        self.staged = True

    def commit(self, message):
        if FakeGitClient.commit_error:
            raise FakeGitClient.commit_error
        self.commits.append(message)


class FakeLLM:
    name = "Fake"

    def __init__(self, replies):
        self.replies = list(replies)
        self.prompts = []
        self.closed = False

    def generate(self, prompt):
        self.prompts.append(prompt)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def close(self):
        self.closed = True


@pytest.fixture
def env(monkeypatch):
    FakeGitClient.instances = []
    FakeGitClient.root = Path("/repo")
    FakeGitClient.status = RepoStatus(modified_files=["a.py"])
    FakeGitClient.diff = DIFF
    FakeGitClient.commit_error = None
    monkeypatch.setattr(cli, "GitClient", FakeGitClient)
    monkeypatch.setattr(cli, "load_config", lambda cwd=None: dict(DEFAULT_CONFIG))
    state = {"llm": FakeLLM([REPLY]), "create_args": None}

    def fake_create_client(provider, credential, model, base_url=None):
        state["create_args"] = (provider, credential, model, base_url)
        return state["llm"]

    monkeypatch.setattr(cli, "create_client", fake_create_client)
    return state


def http_response(status_code, body):
    response = requests.Response()
    response.status_code = status_code
    response.raw = io.BytesIO(body.encode("utf-8"))
    return response


def run(args, input=None):
    return CliRunner().invoke(cli.main, args, input=input)


def committed():
    return [message for client in FakeGitClient.instances for message in client.commits]


def test_auto_commit(env):
    result = run(["commit", "--auto", "--api-key", "sk-test"])
    assert result.exit_code == cli.EXIT_SUCCESS, result.output
    assert committed() == ["feat(auth): add token refresh"]
    assert FakeGitClient.instances[0].staged
    assert env["llm"].closed
    assert env["create_args"] == ("openai", "sk-test", "gpt-4", None)


def test_context_passed_to_prompt(env):
    run(["commit", "--auto", "--api-key", "sk-test"])
    prompt = env["llm"].prompts[0]
    assert "Branch: feature/x" in prompt
    assert "Files changed: 1" in prompt
    assert "Lines added: 2" in prompt
    assert "Lines removed: 1" in prompt


def test_cli_overrides_config(env):
    run([
        "commit", "--auto", "--api-key", "k", "--provider", "anthropic",
        "--model", "claude-3-haiku", "--base-url", "https://proxy.example.com",
    ])
    assert env["create_args"] == ("anthropic", "k", "claude-3-haiku", "https://proxy.example.com")


def test_api_key_from_env(env, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    result = run(["commit", "--auto"])
    assert result.exit_code == cli.EXIT_SUCCESS
    assert env["create_args"][1] == "sk-env"


def test_clean_tree(env):
    FakeGitClient.status = RepoStatus()
    result = run(["commit", "--auto", "--api-key", "k"])
    assert result.exit_code == cli.EXIT_NO_CHANGES
    assert "No changes to commit" in result.output
    assert env["llm"].prompts == []


def test_not_a_repo(env):
    FakeGitClient.root = None
    result = run(["commit", "--auto", "--api-key", "k"])
    assert result.exit_code == cli.EXIT_NO_REPO
    assert "Not a Git repository" in result.output


def test_unknown_provider(monkeypatch):
    monkeypatch.setattr(cli, "GitClient", FakeGitClient)
    FakeGitClient.root = Path("/repo")
    FakeGitClient.status = RepoStatus(modified_files=["a.py"])
    monkeypatch.setattr(cli, "load_config", lambda cwd=None: dict(DEFAULT_CONFIG, provider="gemini"))
    with patch.object(requests.Session, "post") as mock_post:
        result = run(["commit", "--auto", "--api-key", "k"])
    assert result.exit_code == cli.EXIT_CONFIG_ERROR
    assert "Unsupported AI provider" in result.output
    mock_post.assert_not_called()


def test_missing_api_key_in_auto_mode(monkeypatch):
    monkeypatch.setattr(cli, "GitClient", FakeGitClient)
    FakeGitClient.root = Path("/repo")
    FakeGitClient.status = RepoStatus(modified_files=["a.py"])
    monkeypatch.setattr(cli, "load_config", lambda cwd=None: dict(DEFAULT_CONFIG))
    result = run(["commit", "--auto"])
    assert result.exit_code == cli.EXIT_CONFIG_ERROR
    assert "No API key" in result.output


def test_rate_limit_is_reported_once(monkeypatch):
    monkeypatch.setattr(cli, "GitClient", FakeGitClient)
    FakeGitClient.instances = []
    FakeGitClient.root = Path("/repo")
    FakeGitClient.status = RepoStatus(modified_files=["a.py"])
    monkeypatch.setattr(cli, "load_config", lambda cwd=None: dict(DEFAULT_CONFIG))
    response = http_response(429, json.dumps({"error": {"message": "quota exceeded for org-SECRETORG"}}))
    with patch.object(requests.Session, "post", return_value=response) as mock_post:
        result = run(["commit", "--auto", "--api-key", "sk-test"])
    assert result.exit_code == cli.EXIT_LLM_FAILURE
    assert "Rate limit exceeded. Please try again later." in result.output
    assert "SECRETORG" not in result.output
    assert mock_post.call_count == 1
    assert committed() == []


def test_rate_limit_debug_shows_body(monkeypatch):
    monkeypatch.setattr(cli, "GitClient", FakeGitClient)
    FakeGitClient.root = Path("/repo")
    FakeGitClient.status = RepoStatus(modified_files=["a.py"])
    monkeypatch.setattr(cli, "load_config", lambda cwd=None: dict(DEFAULT_CONFIG))
    response = http_response(429, "quota exceeded for org-SECRETORG")
    with patch.object(requests.Session, "post", return_value=response):
        result = run(["commit", "--auto", "--api-key", "sk-test", "--debug"])
    assert result.exit_code == cli.EXIT_LLM_FAILURE
    assert "SECRETORG" in result.output


def test_parse_failure(env):
    env["llm"] = FakeLLM(["I am unable to produce JSON today."])
    result = run(["commit", "--auto", "--api-key", "k"])
    assert result.exit_code == cli.EXIT_PARSE_FAILURE
    assert "No JSON object found" in result.output
    assert "unable to produce JSON" not in result.output
    assert "--debug" in result.output
    assert committed() == []


def test_parse_failure_debug_shows_reply(env):
    env["llm"] = FakeLLM(["I am unable to produce JSON today."])
    result = run(["commit", "--auto", "--api-key", "k", "--debug"])
    assert result.exit_code == cli.EXIT_PARSE_FAILURE
    assert "unable to produce JSON" in result.output


def test_interactive_accept(env):
    result = run(["commit", "--api-key", "k"], input="a\n")
    assert result.exit_code == cli.EXIT_SUCCESS, result.output
    assert "feat(auth): add token refresh" in result.output
    assert committed() == ["feat(auth): add token refresh"]


def test_interactive_cancel(env):
    result = run(["commit", "--api-key", "k"], input="c\n")
    assert result.exit_code == cli.EXIT_DECLINED
    assert "Commit cancelled" in result.output
    assert committed() == []


def test_interactive_regenerate_then_accept(env):
    env["llm"] = FakeLLM([REPLY, '{"type":"fix","description":"second try"}'])
    result = run(["commit", "--api-key", "k"], input="r\na\n")
    assert result.exit_code == cli.EXIT_SUCCESS, result.output
    assert len(env["llm"].prompts) == 2
    assert committed() == ["fix: second try"]


def test_interactive_edit(env, monkeypatch):
    monkeypatch.setattr(cli.click, "edit", lambda text: "fix(auth): hand written\n")
    result = run(["commit", "--api-key", "k"], input="e\n")
    assert result.exit_code == cli.EXIT_SUCCESS, result.output
    assert committed() == ["fix(auth): hand written"]
    assert "edited message" in result.output


def test_interactive_edit_unchanged_keeps_original(env, monkeypatch):
    monkeypatch.setattr(cli.click, "edit", lambda text: None)
    result = run(["commit", "--api-key", "k"], input="e\n")
    assert result.exit_code == cli.EXIT_SUCCESS
    assert committed() == ["feat(auth): add token refresh"]


def test_prompted_api_key(env):
    result = run(["commit"], input="sk-typed\na\n")
    assert result.exit_code == cli.EXIT_SUCCESS, result.output
    assert env["create_args"][1] == "sk-typed"
    assert "sk-typed" not in result.output


def test_show_diff_declined(env):
    result = run(["commit", "--api-key", "k", "--show-diff"], input="n\n")
    assert result.exit_code == cli.EXIT_DECLINED
    assert "Diff Preview" in result.output
    assert "+new" in result.output
    assert env["llm"].prompts == []


def test_commit_git_failure(env):
    FakeGitClient.commit_error = GitError("nothing added to commit")
    result = run(["commit", "--auto", "--api-key", "k"])
    assert result.exit_code == cli.EXIT_VCS_FAILURE
    assert "nothing added to commit" in result.output


def test_parse_error_class_maps_to_exit_code(env):
    env["llm"] = FakeLLM([ParseError("boom")])
    result = run(["commit", "--auto", "--api-key", "k"])
    assert result.exit_code == cli.EXIT_PARSE_FAILURE


def test_unexpected_generation_error(env):
    env["llm"] = FakeLLM([GenerationError("provider returned nothing useful")])
    result = run(["commit", "--auto", "--api-key", "k"])
    assert result.exit_code == cli.EXIT_GENERIC_ERROR
    assert "provider returned nothing useful" in result.output
    assert env["llm"].closed


def test_unknown_provider_fails_before_asking_for_key(env):
    result = run(["commit", "--provider", "foo"], input="sk-typed\na\n")
    assert result.exit_code == cli.EXIT_CONFIG_ERROR
    assert "Unsupported AI provider: 'foo'" in result.output
    assert "API key" not in result.output
    assert env["create_args"] is None
    assert env["llm"].prompts == []
