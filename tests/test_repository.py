"""Tests for the GitHub / GitLab repository client."""

from unittest.mock import MagicMock, patch

import httpx
import pytest

from repodeps.config import Settings
from repodeps.repository import RepoInfo, RepositoryClient, RepositoryError, parse_repo_url


def _response(status_code=200, json_data=None, text=""):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = json_data
    resp.text = text
    return resp


def _router(routes):
    """side_effect that answers httpx.Client.get by exact URL."""

    def get(url, headers=None):
        if url not in routes:
            return _response(404)
        return routes[url]

    return get


GITHUB_ROUTES = {
    "https://api.github.com/repos/octo/app": _response(
        json_data={"name": "app", "description": "Demo app", "language": "Python"}
    ),
    "https://api.github.com/repos/octo/app/contents": _response(
        json_data=[
            {
                "name": "requirements.txt",
                "type": "file",
                "path": "requirements.txt",
                "download_url": "https://raw.githubusercontent.com/octo/app/main/requirements.txt",
            },
            {"name": "src", "type": "dir", "path": "src", "download_url": None},
            {
                "name": "README.md",
                "type": "file",
                "path": "README.md",
                "download_url": "https://raw.githubusercontent.com/octo/app/main/README.md",
            },
        ]
    ),
    "https://raw.githubusercontent.com/octo/app/main/requirements.txt": _response(text="flask==3.0.0\n"),
}


class TestParseRepoUrl:
    def test_github(self):
        parsed = parse_repo_url("https://github.com/octo/app")
        assert (parsed.platform, parsed.owner, parsed.repo) == ("github", "octo", "app")

    def test_git_suffix_and_extra_path(self):
        assert parse_repo_url("https://github.com/octo/app.git").repo == "app"
        assert parse_repo_url("https://github.com/octo/app/tree/main/src").repo == "app"

    def test_gitlab(self):
        assert parse_repo_url("https://gitlab.com/group/project").platform == "gitlab"

    def test_self_hosted_gitlab(self):
        parsed = parse_repo_url("https://git.example.com/team/svc", gitlab_url="https://git.example.com")
        assert parsed.platform == "gitlab"

    @pytest.mark.parametrize(
        "url",
        [
            "not a url",
            "ftp://github.com/octo/app",
            "https://github.com/octo",
            "https://bitbucket.org/octo/app",
        ],
    )
    def test_rejected(self, url):
        with pytest.raises(RepositoryError) as exc_info:
            parse_repo_url(url)
        assert exc_info.value.status_code == 400


class TestGitHub:
    @patch("httpx.Client.get")
    def test_repo_info(self, mock_get):
        mock_get.side_effect = _router(GITHUB_ROUTES)
        with RepositoryClient(Settings()) as client:
            info = client.get_repo_info("https://github.com/octo/app")

        assert isinstance(info, RepoInfo)
        assert (info.name, info.description, info.language) == ("app", "Demo app", "Python")
        assert (info.platform, info.owner) == ("github", "octo")
        files = {f.name: f for f in info.files}
        assert files["requirements.txt"].content == "flask==3.0.0\n"
        assert files["README.md"].content is None
        assert files["src"].type == "dir"

        # README is not a manifest, so it is never downloaded
        fetched = [c.args[0] for c in mock_get.call_args_list]
        assert not any(url.endswith("README.md") for url in fetched)

    @patch("httpx.Client.get")
    def test_token_sent(self, mock_get):
        mock_get.side_effect = _router(GITHUB_ROUTES)
        client = RepositoryClient(Settings(github_token="secret"))
        client.get_repo_info("https://github.com/octo/app")
        headers = mock_get.call_args_list[0].kwargs["headers"]
        assert headers["Authorization"] == "Bearer secret"

    @patch("httpx.Client.get")
    def test_not_found(self, mock_get):
        mock_get.return_value = _response(404)
        client = RepositoryClient(Settings())
        with pytest.raises(RepositoryError, match="Repository not found: octo/missing") as exc_info:
            client.get_repo_info("https://github.com/octo/missing")
        assert exc_info.value.status_code == 404

    @patch("httpx.Client.get")
    def test_upstream_status_passed_through(self, mock_get):
        mock_get.return_value = _response(403)
        client = RepositoryClient(Settings())
        with pytest.raises(RepositoryError) as exc_info:
            client.get_repo_info("https://github.com/octo/app")
        assert exc_info.value.status_code == 403

    @patch("httpx.Client.get")
    def test_transport_error_wrapped(self, mock_get):
        mock_get.side_effect = httpx.ConnectError("connection refused")
        client = RepositoryClient(Settings())
        with pytest.raises(RepositoryError) as exc_info:
            client.get_repo_info("https://github.com/octo/app")
        assert exc_info.value.status_code == 500

    @patch("httpx.Client.get")
    def test_failed_download_leaves_content_absent(self, mock_get):
        routes = dict(GITHUB_ROUTES)
        del routes["https://raw.githubusercontent.com/octo/app/main/requirements.txt"]
        mock_get.side_effect = _router(routes)
        info = RepositoryClient(Settings()).get_repo_info("https://github.com/octo/app")
        assert info.files[0].content is None

    @patch("httpx.Client.get")
    def test_download_truncated(self, mock_get):
        routes = dict(GITHUB_ROUTES)
        routes["https://raw.githubusercontent.com/octo/app/main/requirements.txt"] = _response(
            text="x" * 100
        )
        mock_get.side_effect = _router(routes)
        info = RepositoryClient(Settings(max_file_bytes=8)).get_repo_info("https://github.com/octo/app")
        assert info.files[0].content == "x" * 8


class TestGitLab:
    PROJECT = "https://gitlab.com/api/v4/projects/team%2Fsvc"

    @patch("httpx.Client.get")
    def test_repo_info(self, mock_get):
        mock_get.side_effect = _router({
            self.PROJECT: _response(
                json_data={"name": "svc", "description": None, "default_branch": "develop"}
            ),
            f"{self.PROJECT}/repository/tree": _response(
                json_data=[
                    {"name": "go.mod", "type": "blob", "path": "go.mod"},
                    {"name": "cmd", "type": "tree", "path": "cmd"},
                ]
            ),
            f"{self.PROJECT}/repository/files/go.mod/raw?ref=develop": _response(
                text="require example.com/x v1.0.0\n"
            ),
        })
        info = RepositoryClient(Settings(gitlab_token="glpat")).get_repo_info(
            "https://gitlab.com/team/svc"
        )

        assert (info.name, info.platform, info.owner, info.language) == ("svc", "gitlab", "team", None)
        assert [(f.name, f.type) for f in info.files] == [("go.mod", "file"), ("cmd", "dir")]
        assert info.files[0].content == "require example.com/x v1.0.0\n"
        assert mock_get.call_args_list[0].kwargs["headers"]["PRIVATE-TOKEN"] == "glpat"


class TestRepoInfo:
    def test_round_trip_drops_contents(self):
        info = RepoInfo.from_dict({
            "name": "app",
            "description": None,
            "language": "Go",
            "platform": "github",
            "owner": "octo",
            "files": [{"name": "go.mod", "type": "file", "path": "go.mod", "content": "module x"}],
        })
        assert info.files[0].content == "module x"
        assert info.to_dict()["files"] == [{"name": "go.mod", "type": "file", "path": "go.mod"}]
