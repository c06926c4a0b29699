"""Local HTTP API for repository analysis and README generation.

Endpoints (all POST, JSON in and out):
    /analyzer/analyze        {"files": [...]}                  -> AnalysisResult
    /repository/info         {"url": ...}                      -> RepoInfo
    /api/analyze             {"url": ...}                      -> {repoInfo, analysisResult}
    /api/generate-readme     {"url": ...} or {"repoInfo", "analysisResult"} -> {readme}
    /generator/readme        {"repoInfo", "analysisResult"}    -> {readme}
"""

from __future__ import annotations

import json
import logging
import re
from functools import partial
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as ModelValidationError
from pydantic_core import PydanticCustomError

from .analyzer import AnalysisResult, RepoFile, analyze
from .config import DEFAULT_PORT
from .readme import render_readme
from .records import DependencyType
from .repository import RepoInfo, RepositoryClient, RepositoryError

logger = logging.getLogger(__name__)

REPO_URL_PATTERN = re.compile(r"^https?://(github\.com|gitlab\.com|[\w.-]+)/[\w.-]+/[\w.-]+/?.*$")
URL_MESSAGE = "url must be a valid GitHub or GitLab repository URL"
SOURCE_MESSAGE = 'Provide either "url" or both "repoInfo" and "analysisResult"'

# Errors raised with a complete message of their own
_STANDALONE_ERRORS = frozenset({"repo_url", "readme_source"})


class ValidationError(ValueError):
    """Request body failed validation."""


# --- Request models ---


def _check_repo_url(value: Any) -> str:
    if not isinstance(value, str) or not REPO_URL_PATTERN.match(value):
        raise PydanticCustomError("repo_url", URL_MESSAGE)
    return value


class RepoFilePayload(BaseModel):
    name: str = Field(min_length=1)
    type: Literal["file", "dir"]
    path: str = Field(min_length=1)
    content: str | None = None


class AnalyzeRequest(BaseModel):
    files: list[RepoFilePayload] = Field(min_length=1)


class UrlRequest(BaseModel):
    url: str

    @field_validator("url", mode="before")
    @classmethod
    def check_url(cls, value: Any) -> str:
        return _check_repo_url(value)


class RepoInfoPayload(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None
    language: str | None = None
    platform: Literal["github", "gitlab"]
    owner: str = Field(min_length=1)


class PackagePayload(BaseModel):
    name: str = Field(min_length=1)
    version: str | None = None
    type: DependencyType


class DependencyFilePayload(BaseModel):
    file: str = Field(min_length=1)
    path: str = Field(min_length=1)
    packages: list[PackagePayload]


class StructurePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    directories: list[str]
    key_files: list[str] = Field(alias="keyFiles")


class AnalysisPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    language: str = Field(min_length=1)
    package_manager: str | None = Field(default=None, alias="packageManager")
    dependencies: list[DependencyFilePayload]
    structure: StructurePayload
    version: str | None = None
    license: str | None = None


class ReadmeDataRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    repo_info: RepoInfoPayload = Field(alias="repoInfo")
    analysis: AnalysisPayload = Field(alias="analysisResult")


class ReadmeRequest(BaseModel):
    """A README request: a repository URL, or a prepared repoInfo and analysisResult."""

    model_config = ConfigDict(populate_by_name=True)

    url: str | None = None
    repo_info: RepoInfoPayload | None = Field(default=None, alias="repoInfo")
    analysis: AnalysisPayload | None = Field(default=None, alias="analysisResult")

    @field_validator("url", mode="before")
    @classmethod
    def check_url(cls, value: Any) -> str | None:
        if value is None or value == "":
            return None
        return _check_repo_url(value)

    @model_validator(mode="after")
    def require_source(self) -> ReadmeRequest:
        if self.url is None and (self.repo_info is None or self.analysis is None):
            raise PydanticCustomError("readme_source", SOURCE_MESSAGE)
        return self

    def to_repo_info(self) -> RepoInfo | None:
        if self.repo_info is None:
            return None
        return RepoInfo.from_dict(self.repo_info.model_dump())

    def to_analysis(self) -> AnalysisResult | None:
        if self.analysis is None:
            return None
        return AnalysisResult.from_dict(self.analysis.model_dump(mode="json", by_alias=True))


def _describe(error: ModelValidationError) -> str:
    """Flatten a model error into one line per failed field."""
    messages = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"])
        if detail["type"] in _STANDALONE_ERRORS or not location:
            messages.append(detail["msg"])
        else:
            messages.append(f"{location}: {detail['msg']}")
    return "; ".join(messages)


def _parse(model: type[BaseModel], body: Any) -> Any:
    try:
        return model.model_validate(body)
    except ModelValidationError as e:
        raise ValidationError(_describe(e)) from e


def validate_analyze_request(body: Any) -> list[RepoFile]:
    """Validate {"files": [...]} and return the listing."""
    request = _parse(AnalyzeRequest, body)
    return [RepoFile.from_dict(item.model_dump()) for item in request.files]


def validate_url_request(body: Any) -> str:
    """Validate {"url": ...} and return the URL."""
    return _parse(UrlRequest, body).url


def validate_readme_data(body: Any) -> ReadmeRequest:
    """Validate {"repoInfo", "analysisResult"}; both are required."""
    data = _parse(ReadmeDataRequest, body)
    return ReadmeRequest(repo_info=data.repo_info, analysis=data.analysis)


def validate_readme_request(body: Any) -> ReadmeRequest:
    """Validate a README request: a URL, or both repoInfo and analysisResult."""
    return _parse(ReadmeRequest, body)


# --- HTTP ---


class ApiHandler(BaseHTTPRequestHandler):
    """HTTP handler for the JSON API."""

    def __init__(self, *args, client: RepositoryClient, **kwargs):
        self._client = client
        self._routes = {
            "/analyzer/analyze": self._analyze_files,
            "/repository/info": self._repository_info,
            "/api/analyze": self._analyze_url,
            "/api/generate-readme": self._generate_readme,
            "/generator/readme": self._generate_readme_from_data,
        }
        super().__init__(*args, **kwargs)

    def do_POST(self):
        length = int(self.headers.get("Content-Length") or 0)
        raw = self.rfile.read(length)

        route = self._routes.get(self.path.split("?", 1)[0].rstrip("/"))
        if route is None:
            self._send_error(404, f"Cannot POST {self.path}")
            return

        try:
            body = json.loads(raw or b"null")
        except ValueError:
            self._send_error(400, "Request body must be valid JSON")
            return

        try:
            self._send_json(200, route(body))
        except ValidationError as e:
            self._send_error(400, str(e))
        except RepositoryError as e:
            self._send_error(e.status_code, str(e))

    def do_GET(self):
        self._send_error(404, f"Cannot GET {self.path}")

    # --- Routes ---

    def _analyze_files(self, body: Any) -> dict[str, Any]:
        return analyze(validate_analyze_request(body)).to_dict()

    def _repository_info(self, body: Any) -> dict[str, Any]:
        return self._client.get_repo_info(validate_url_request(body)).to_dict()

    def _analyze_url(self, body: Any) -> dict[str, Any]:
        repo_info = self._client.get_repo_info(validate_url_request(body))
        return {
            "repoInfo": repo_info.to_dict(),
            "analysisResult": analyze(repo_info.files).to_dict(),
        }

    def _generate_readme(self, body: Any) -> dict[str, Any]:
        request = validate_readme_request(body)
        if request.url:
            repo_info = self._client.get_repo_info(request.url)
            analysis = analyze(repo_info.files)
        else:
            repo_info, analysis = request.to_repo_info(), request.to_analysis()
        return {"readme": render_readme(repo_info, analysis)}

    def _generate_readme_from_data(self, body: Any) -> dict[str, Any]:
        request = validate_readme_data(body)
        return {"readme": render_readme(request.to_repo_info(), request.to_analysis())}

    # --- Responses ---

    def _send_json(self, status: int, payload: dict[str, Any]) -> None:
        content = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(content)))
        self.send_header("Access-Control-Allow-Origin", "*")
        self.end_headers()
        self.wfile.write(content)

    def _send_error(self, status: int, message: str) -> None:
        self._send_json(status, {"statusCode": status, "message": message})

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)


def start_server(
    port: int = DEFAULT_PORT,
    client: RepositoryClient | None = None,
    host: str = "127.0.0.1",
) -> None:
    """Serve the API until interrupted.

    Args:
        port: Port to serve on
        client: Repository client; one is built from the environment if omitted
        host: Interface to bind
    """
    client = client or RepositoryClient()
    handler = partial(ApiHandler, client=client)
    HTTPServer.allow_reuse_address = True
    server = HTTPServer((host, port), handler)
    logger.info("Serving on http://%s:%d", host, port)

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
        client.close()
