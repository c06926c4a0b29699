"""Tests for the repository analyzer."""

import pytest

from repodeps.analyzer import (
    AnalysisResult,
    RepoFile,
    analyze,
    analyze_repo,
    detect_language,
    detect_package_manager,
    detect_structure,
    scan_directory,
)
from repodeps.records import DependencyType, ExtractedDependency


@pytest.fixture
def sample_python_repo(tmp_path):
    """Create a sample Python repo structure."""
    # Root files
    (tmp_path / "README.md").write_text("# My Project\nA cool project\n")
    (tmp_path / "LICENSE").write_text("MIT License\nCopyright 2026")
    (tmp_path / "pyproject.toml").write_text(
        '[project]\nname = "myproject"\nversion = "1.0.0"\nlicense = { text = "MIT" }\n'
        'dependencies = [\n  "fastapi>=0.100",\n  "pydantic>=2.0",\n  "sqlalchemy>=2.0",\n]\n'
        '\n[project.optional-dependencies]\ndev = ["pytest>=8.0", "ruff>=0.1"]\n'
    )

    # Source
    src = tmp_path / "src" / "myproject"
    src.mkdir(parents=True)
    (src / "__init__.py").write_text("__version__ = '1.0.0'")
    (src / "main.py").write_text("from fastapi import FastAPI\napp = FastAPI()\n")
    (src / "models.py").write_text("from sqlalchemy import Column\nclass User: pass\n")
    (src / "routes.py").write_text("from . import app\n@app.get('/')\ndef root(): pass\n")

    # Tests
    tests = tmp_path / "tests"
    tests.mkdir()
    (tests / "conftest.py").write_text("import pytest\n")
    (tests / "test_main.py").write_text("def test_root(): pass\n")

    # CI
    ci = tmp_path / ".github" / "workflows"
    ci.mkdir(parents=True)
    (ci / "ci.yml").write_text("name: CI\non: push\n")

    # Docker
    (tmp_path / "Dockerfile").write_text("FROM python:3.12\n")
    (tmp_path / "docker-compose.yml").write_text("services:\n  app:\n    build: .\n")

    # Docs
    docs = tmp_path / "docs"
    docs.mkdir()
    (docs / "index.md").write_text("# Docs\n")

    return tmp_path


@pytest.fixture
def sample_rust_repo(tmp_path):
    """Create a sample Rust repo structure."""
    (tmp_path / "README.md").write_text("# RustDB\nA key-value store\n")
    (tmp_path / "Cargo.toml").write_text(
        '[package]\nname = "rustdb"\nversion = "0.1.0"\nedition = "2021"\n'
        'description = "A fast key-value store"\n\n'
        '[dependencies]\ntokio = { version = "1", features = ["full"] }\n'
        'tonic = "0.11"\nserde = { version = "1", features = ["derive"] }\n'
        '\n[dev-dependencies]\ncriterion = "0.5"\n'
    )
    src = tmp_path / "src"
    src.mkdir()
    (src / "main.rs").write_text('fn main() { println!("hello"); }\n')
    (src / "lib.rs").write_text("pub mod storage;\npub mod server;\n")
    (src / "storage.rs").write_text("pub struct Store {}\n")

    tests = tmp_path / "tests"
    tests.mkdir()
    (tests / "integration_test.rs").write_text("#[test]\nfn test_store() {}\n")

    proto = tmp_path / "proto"
    proto.mkdir()
    (proto / "api.proto").write_text('syntax = "proto3";\n')

    # Build output is never scanned
    target = tmp_path / "target" / "debug"
    target.mkdir(parents=True)
    (target / "build.rs").write_text("fn main() {}\n")

    return tmp_path


@pytest.fixture
def sample_node_repo(tmp_path):
    """Create a sample Node.js/Next.js monorepo structure."""
    (tmp_path / "README.md").write_text("# WebApp\nNext.js web application\n")
    (tmp_path / "package.json").write_text(
        '{"name": "webapp", "version": "0.4.0", "license": "Apache-2.0", '
        '"dependencies": {"next": "^14", "react": "^18"}, '
        '"devDependencies": {"vitest": "^1", "typescript": "^5"}}'
    )
    (tmp_path / "yarn.lock").write_text("# yarn lockfile v1\n")
    (tmp_path / "next.config.js").write_text("module.exports = {}\n")
    (tmp_path / "tsconfig.json").write_text("{}\n")

    app = tmp_path / "app"
    app.mkdir()
    (app / "page.tsx").write_text("export default function Home() {}\n")
    (app / "layout.tsx").write_text("export default function Layout() {}\n")

    components = tmp_path / "components"
    components.mkdir()
    (components / "Header.tsx").write_text("export default function Header() {}\n")

    web = tmp_path / "packages" / "ui"
    web.mkdir(parents=True)
    (web / "package.json").write_text('{"peerDependencies": {"react": ">=18"}}')

    modules = tmp_path / "node_modules" / "react"
    modules.mkdir(parents=True)
    (modules / "package.json").write_text('{"dependencies": {"loose-envify": "^1.1.0"}}')
    (modules / "index.js").write_text("module.exports = {}\n")

    return tmp_path


class TestAnalyzeRepo:
    """Test full repo analysis."""

    def test_python_repo(self, sample_python_repo):
        analysis = analyze_repo(sample_python_repo)
        assert analysis.language == "Python"
        assert analysis.package_manager == "pip"
        assert analysis.version == "1.0.0"
        assert analysis.license == "MIT"

        assert [d.path for d in analysis.dependencies] == ["pyproject.toml"]
        production = analysis.packages_of_type(DependencyType.PRODUCTION)
        assert [p.name for p in production] == ["fastapi", "pydantic", "sqlalchemy"]
        optional = analysis.packages_of_type(DependencyType.OPTIONAL)
        assert [p.name for p in optional] == ["pytest", "ruff"]

        assert analysis.structure.directories == ["docs", "src", "tests"]
        assert analysis.structure.key_files == ["Dockerfile", "LICENSE", "README.md", "docker-compose.yml"]

    def test_rust_repo(self, sample_rust_repo):
        analysis = analyze_repo(sample_rust_repo)
        assert analysis.language == "Rust"
        assert analysis.package_manager == "cargo"
        assert analysis.version == "0.1.0"
        assert analysis.license is None
        assert [p.name for p in analysis.packages_of_type(DependencyType.PRODUCTION)] == [
            "tokio",
            "tonic",
            "serde",
        ]
        assert analysis.packages_of_type(DependencyType.DEV) == [
            ExtractedDependency("criterion", "0.5", DependencyType.DEV)
        ]
        assert analysis.structure.directories == ["src", "tests"]

    def test_node_repo(self, sample_node_repo):
        analysis = analyze_repo(sample_node_repo)
        assert analysis.language == "TypeScript"
        # yarn.lock outranks the package.json manifest
        assert analysis.package_manager == "yarn"
        assert analysis.version == "0.4.0"
        assert analysis.license == "Apache-2.0"

        paths = [d.path for d in analysis.dependencies]
        assert paths == ["package.json", "yarn.lock", "packages/ui/package.json"]
        assert not any("node_modules" in p for p in paths)

        lock = analysis.dependencies[1]
        assert lock.packages == []
        assert analysis.packages_of_type(DependencyType.PEER) == [
            ExtractedDependency("react", ">=18", DependencyType.PEER)
        ]
        assert analysis.structure.key_files == ["README.md", "tsconfig.json"]

    def test_empty_repo(self, tmp_path):
        analysis = analyze_repo(tmp_path)
        assert analysis.language == "Unknown"
        assert analysis.package_manager is None
        assert analysis.dependencies == []
        assert analysis.version is None

    def test_malformed_manifest_does_not_abort(self, tmp_path):
        (tmp_path / "package.json").write_text("{not json")
        (tmp_path / "requirements.txt").write_text("flask==3.0\n")
        analysis = analyze_repo(tmp_path)
        by_file = {d.file: d.packages for d in analysis.dependencies}
        assert by_file["package.json"] == []
        assert [p.name for p in by_file["requirements.txt"]] == ["flask"]

    def test_nonexistent_path(self):
        with pytest.raises(ValueError, match="Not a directory"):
            analyze_repo("/nonexistent/path")


class TestScanDirectory:
    def test_reads_only_manifests(self, sample_python_repo):
        files = {f.path: f for f in scan_directory(sample_python_repo)}
        assert files["pyproject.toml"].content is not None
        assert files["README.md"].content is None
        assert files["src"].type == "dir"
        assert files["src/myproject/main.py"].is_file

    def test_truncates_large_manifests(self, tmp_path):
        (tmp_path / "requirements.txt").write_text("a==1\n" * 100)
        files = scan_directory(tmp_path, max_file_bytes=10)
        assert files[0].content == "a==1\na==1\n"


class TestDetection:
    def test_language_tie_keeps_first(self):
        files = [
            RepoFile("b.js", "file", "b.js"),
            RepoFile("a.py", "file", "a.py"),
        ]
        assert detect_language(files) == "JavaScript"

    def test_language_ignores_directories(self):
        files = [RepoFile("lib.py", "dir", "lib.py"), RepoFile("main.go", "file", "main.go")]
        assert detect_language(files) == "Go"

    def test_package_manager_from_first_manifest(self):
        files = [
            RepoFile("Gemfile", "file", "Gemfile", "gem 'rails'\n"),
            RepoFile("package.json", "file", "package.json", "{}"),
        ]
        result = analyze(files)
        assert result.package_manager == "bundler"
        assert detect_package_manager([]) is None

    def test_manifest_without_content(self):
        result = analyze([RepoFile("go.mod", "file", "go.mod")])
        assert result.dependencies[0].packages == []
        assert result.package_manager == "go modules"

    def test_structure_top_level_only(self):
        files = [
            RepoFile("src", "dir", "src"),
            RepoFile("docs", "dir", "packages/docs"),
            RepoFile("Makefile", "file", "Makefile"),
            RepoFile("Dockerfile", "file", "services/api/Dockerfile"),
        ]
        structure = detect_structure(files)
        assert structure.directories == ["src"]
        assert structure.key_files == ["Makefile"]


class TestAnalysisResult:
    def test_to_dict_uses_wire_names(self, sample_python_repo):
        d = analyze_repo(sample_python_repo).to_dict()
        assert set(d) == {"language", "packageManager", "dependencies", "structure", "version", "license"}
        assert "keyFiles" in d["structure"]
        assert d["dependencies"][0]["packages"][0] == {
            "name": "fastapi",
            "version": ">=0.100",
            "type": "production",
        }

    def test_from_dict_restores_result(self, sample_rust_repo):
        analysis = analyze_repo(sample_rust_repo)
        assert AnalysisResult.from_dict(analysis.to_dict()) == analysis
