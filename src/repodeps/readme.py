"""README generator - renders Markdown from repository info and analysis.

Each section builder returns a Markdown block, or an empty string when the
analysis has nothing to say for it; empty blocks are dropped.
"""

from __future__ import annotations

from urllib.parse import quote

from .analyzer import AnalysisResult
from .records import DependencyType, ExtractedDependency
from .repository import RepoInfo

LANGUAGE_BADGES = {
    "TypeScript": ("3178C6", "typescript", "white"),
    "JavaScript": ("F7DF1E", "javascript", "black"),
    "Python": ("3776AB", "python", "white"),
    "Java": ("ED8B00", "openjdk", "white"),
    "Go": ("00ADD8", "go", "white"),
    "Ruby": ("CC342D", "ruby", "white"),
    "PHP": ("777BB4", "php", "white"),
    "Rust": ("000000", "rust", "white"),
    "C#": ("239120", "csharp", "white"),
    "C++": ("00599C", "cplusplus", "white"),
    "C": ("A8B9CC", "c", "black"),
    "Swift": ("F05138", "swift", "white"),
    "Kotlin": ("7F52FF", "kotlin", "white"),
    "Scala": ("DC322F", "scala", "white"),
    "Dart": ("0175C2", "dart", "white"),
    "Vue": ("4FC08D", "vuedotjs", "white"),
    "Svelte": ("FF3E00", "svelte", "white"),
}

# package manager -> (install command, run command)
INSTALL_COMMANDS = {
    "npm": ("npm install", "npm run dev"),
    "yarn": ("yarn install", "yarn dev"),
    "pnpm": ("pnpm install", "pnpm dev"),
    "pip": ("pip install -r requirements.txt", "python main.py"),
    "composer": ("composer install", "php artisan serve"),
    "bundler": ("bundle install", "bundle exec rails server"),
    "go modules": ("go mod download", "go run ."),
    "cargo": ("cargo build", "cargo run"),
    "maven": ("mvn install", "mvn spring-boot:run"),
    "gradle": ("./gradlew build", "./gradlew bootRun"),
    "pub": ("dart pub get", "dart run"),
    "swift package manager": ("swift package resolve", "swift run"),
}

RUNTIMES = {
    "TypeScript": "Node.js (>= 18)",
    "JavaScript": "Node.js (>= 18)",
    "Python": "Python (>= 3.8)",
    "Java": "Java JDK (>= 17)",
    "Go": "Go (>= 1.21)",
    "Ruby": "Ruby (>= 3.0)",
    "PHP": "PHP (>= 8.1)",
    "Rust": "Rust (latest stable)",
    "C#": ".NET SDK (>= 8.0)",
    "C++": "C++ compiler (GCC/Clang)",
    "C": "C compiler (GCC/Clang)",
    "Swift": "Swift (>= 5.9)",
    "Kotlin": "Kotlin / JDK (>= 17)",
    "Scala": "Scala / JDK (>= 17)",
    "Dart": "Dart SDK (>= 3.0)",
}

RUN_EXAMPLES = {
    "TypeScript": "npx ts-node src/index.ts",
    "JavaScript": "node src/index.js",
    "Python": "python main.py",
    "Java": "javac Main.java && java Main",
    "Go": "go run .",
    "Ruby": "ruby main.rb",
    "PHP": "php index.php",
    "Rust": "cargo run",
    "C#": "dotnet run",
    "Swift": "swift run",
    "Dart": "dart run",
}

DEFAULT_DESCRIPTION = "A project built with modern technologies."


def render_readme(repo_info: RepoInfo, analysis: AnalysisResult) -> str:
    """Render a complete README.md."""
    sections = [
        f"# {repo_info.name}",
        _badges(analysis),
        repo_info.description or DEFAULT_DESCRIPTION,
        _table_of_contents(),
        _prerequisites(analysis),
        _installation(repo_info, analysis),
        _usage(analysis),
        _project_structure(analysis),
        _dependencies(analysis),
        _license(),
    ]
    return "\n\n".join(s for s in sections if s)


def _badge(label: str, message: str, color: str) -> str:
    return f"![{label}](https://img.shields.io/badge/{label.lower()}-{quote(message, safe='')}-{color}.svg)"


def _badges(analysis: AnalysisResult) -> str:
    badges = []
    lang = LANGUAGE_BADGES.get(analysis.language)
    if lang:
        color, logo, logo_color = lang
        badges.append(
            f"![{analysis.language}](https://img.shields.io/badge/"
            f"{quote(analysis.language, safe='')}-{color}?logo={logo}&logoColor={logo_color})"
        )
    if analysis.license:
        badges.append(_badge("License", analysis.license, "blue"))
    if analysis.version:
        badges.append(_badge("Version", analysis.version, "green"))
    return " ".join(badges)


def _table_of_contents() -> str:
    entries = ["Prerequisites", "Installation", "Usage", "Project Structure", "Dependencies", "License"]
    lines = ["## Table of Contents", ""]
    lines += [f"- [{e}](#{e.lower().replace(' ', '-')})" for e in entries]
    return "\n".join(lines)


def _prerequisites(analysis: AnalysisResult) -> str:
    lines = ["## Prerequisites", "", "Make sure you have installed:"]
    runtime = RUNTIMES.get(analysis.language)
    if runtime:
        lines.append(f"- {runtime}")

    pm = analysis.package_manager
    if pm and (not runtime or pm.lower() not in runtime.lower()):
        lines.append(f"- {pm}")

    lines.append("- Git")
    return "\n".join(lines)


def _installation(repo_info: RepoInfo, analysis: AnalysisResult) -> str:
    host = "github.com" if repo_info.platform == "github" else "gitlab.com"
    lines = [
        "## Installation",
        "",
        "1. Clone the repository:",
        "",
        "```bash",
        f"git clone https://{host}/{repo_info.owner}/{repo_info.name}.git",
        f"cd {repo_info.name}",
        "```",
    ]
    commands = INSTALL_COMMANDS.get(analysis.package_manager or "")
    if commands:
        lines += ["", "2. Install dependencies:", "", "```bash", commands[0], "```"]
    return "\n".join(lines)


def _usage(analysis: AnalysisResult) -> str:
    lines = ["## Usage", ""]
    commands = INSTALL_COMMANDS.get(analysis.package_manager or "")
    if commands:
        lines += ["Start the development server:", "", "```bash", commands[1], "```"]
    elif analysis.language in RUN_EXAMPLES:
        lines += ["```bash", RUN_EXAMPLES[analysis.language], "```"]
    else:
        lines.append("Refer to the project documentation for run instructions.")
    return "\n".join(lines)


def _project_structure(analysis: AnalysisResult) -> str:
    if not analysis.structure.directories:
        return ""
    lines = ["## Project Structure", "", "```"]
    lines += [f"├── {d}/" for d in analysis.structure.directories]
    lines += [f"├── {f}" for f in analysis.structure.key_files]
    lines.append("```")
    return "\n".join(lines)


def _dependency_table(title: str, packages: list[ExtractedDependency]) -> list[str]:
    lines = ["", f"### {title}", "", "| Package | Version |", "|---------|---------|"]
    lines += [f"| {p.name} | {p.version or '-'} |" for p in packages]
    return lines


def _dependencies(analysis: AnalysisResult) -> str:
    production = analysis.packages_of_type(DependencyType.PRODUCTION)
    dev = analysis.packages_of_type(DependencyType.DEV)
    if not production and not dev:
        return ""

    lines = ["## Dependencies"]
    if production:
        lines += _dependency_table("Main", production)
    if dev:
        lines += _dependency_table("Development", dev)
    return "\n".join(lines)


def _license() -> str:
    return "## License\n\nThis project is licensed under the terms specified in the LICENSE file."
