"""Tests for project version / license extraction."""

from repodeps.metadata import META_EXTRACTORS, extract_project_meta
from repodeps.records import ProjectMeta


class TestExtractProjectMeta:
    def test_package_json(self):
        content = '{"name": "web", "version": "1.2.3", "license": "MIT"}'
        assert extract_project_meta("package.json", content) == ProjectMeta("1.2.3", "MIT")

    def test_malformed_json_does_not_raise(self):
        assert extract_project_meta("package.json", "{broken") == ProjectMeta(None, None)

    def test_non_string_fields_ignored(self):
        content = '{"version": 2, "license": {"type": "MIT"}}'
        assert extract_project_meta("package.json", content) == ProjectMeta()

    def test_composer_license_list(self):
        content = '{"version": "3.0.0", "license": ["MIT", "GPL-3.0-only"]}'
        assert extract_project_meta("composer.json", content) == ProjectMeta("3.0.0", "MIT")

    def test_cargo_reads_package_section_only(self):
        content = (
            '[dependencies]\nversion = "9.9.9"\n'
            '[package]\nname = "app"\nversion = "0.3.0"\nlicense = "Apache-2.0"\n'
        )
        assert extract_project_meta("Cargo.toml", content) == ProjectMeta("0.3.0", "Apache-2.0")

    def test_cargo_workspace_version_not_used(self):
        content = '[workspace.package]\nversion = "1.0.0"\n'
        assert extract_project_meta("Cargo.toml", content) == ProjectMeta()

    def test_pyproject_license_table(self):
        content = '[project]\nname = "d"\nversion = "2.0.0"\nlicense = { text = "BSD-3-Clause" }\n'
        assert extract_project_meta("pyproject.toml", content) == ProjectMeta("2.0.0", "BSD-3-Clause")

    def test_pyproject_poetry(self):
        content = '[tool.poetry]\nname = "d"\nversion = "0.1.0"\nlicense = "MIT"\n'
        assert extract_project_meta("pyproject.toml", content) == ProjectMeta("0.1.0", "MIT")

    def test_pubspec_version(self):
        content = "name: app\nversion: 1.0.0+1\n"
        assert extract_project_meta("pubspec.yaml", content) == ProjectMeta("1.0.0+1", None)

    def test_missing_fields_are_none(self):
        assert extract_project_meta("Cargo.toml", '[package]\nname = "x"\n') == ProjectMeta()

    def test_unrecognized_filename(self):
        assert extract_project_meta("requirements.txt", "flask") is None
        assert extract_project_meta("random.cfg", "") is None

    def test_metadata_formats_are_manifests(self):
        from repodeps.registry import supported_manifests

        assert set(META_EXTRACTORS) <= set(supported_manifests())


class TestProjectMeta:
    def test_is_empty(self):
        assert ProjectMeta().is_empty
        assert not ProjectMeta(version="1.0").is_empty

    def test_to_dict(self):
        assert ProjectMeta("1.0", None).to_dict() == {"version": "1.0", "license": None}
