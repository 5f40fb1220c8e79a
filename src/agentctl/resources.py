# Commands, rules and skills loaded from agentctl resource directories
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from agentctl.utils.fileio import atomic_write_text, sanitize_name

logger = logging.getLogger(__name__)

# ABOUTME: Standard skill file name (Claude Code format)
SKILL_FILE_NAME = "SKILL.md"


@dataclass
class Command:
    """Slash command definition stored as commands/<name>.json."""
    name: str
    description: str = ""
    prompt: str = ""
    argument_hint: str = ""
    allowed_tools: list[str] = field(default_factory=list)
    disallowed_tools: list[str] = field(default_factory=list)
    scope: str = ""

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "prompt": self.prompt,
        }
        if self.argument_hint:
            result["argumentHint"] = self.argument_hint
        if self.allowed_tools:
            result["allowedTools"] = self.allowed_tools
        if self.disallowed_tools:
            result["disallowedTools"] = self.disallowed_tools
        return result


@dataclass
class Rule:
    """Markdown instruction file with optional YAML frontmatter.

    ABOUTME: frontmatter keys: priority, tools, applies, paths, globs
    """
    name: str
    content: str = ""
    frontmatter: dict[str, Any] = field(default_factory=dict)
    path: Path | None = None
    scope: str = ""

    @property
    def globs(self) -> list[str]:
        globs = self.frontmatter.get("globs") or self.frontmatter.get("paths") or []
        if not globs and self.frontmatter.get("applies"):
            globs = [self.frontmatter["applies"]]
        return [str(g) for g in globs]


@dataclass
class Skill:
    """Skill directory containing a SKILL.md with YAML frontmatter."""
    name: str
    description: str = ""
    content: str = ""
    path: Path | None = None
    scope: str = ""


def split_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Split '---' delimited YAML frontmatter from markdown content.

    ABOUTME: Returns ({}, text) when there is no frontmatter or it fails to parse
    """
    if not text.startswith("---"):
        return {}, text

    lines = text.splitlines()
    for idx in range(1, len(lines)):
        if lines[idx].strip() == "---":
            raw = "\n".join(lines[1:idx])
            body = "\n".join(lines[idx + 1:]).strip()
            try:
                data = yaml.safe_load(raw) or {}
            except yaml.YAMLError as e:
                logger.debug(f"Ignoring unparseable frontmatter: {e}")
                return {}, text
            if not isinstance(data, dict):
                return {}, text
            return data, body

    return {}, text


def format_frontmatter(data: dict[str, Any], body: str) -> str:
    """Render markdown with YAML frontmatter, dropping empty values."""
    clean = {key: value for key, value in data.items() if value not in (None, "", [], {})}
    if not clean:
        return body.rstrip() + "\n"
    header = yaml.safe_dump(clean, sort_keys=False, default_flow_style=False).strip()
    return f"---\n{header}\n---\n\n{body.rstrip()}\n"


def load_commands(directory: Path, scope: str = "") -> list[Command]:
    """Load all commands/<name>.json files.

    ABOUTME: Missing directory means no commands
    ABOUTME: Invalid files are skipped with a warning
    """
    if not directory.is_dir():
        return []

    commands: list[Command] = []
    for path in sorted(directory.glob("*.json")):
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Skipping invalid command file {path}: {e}")
            continue
        commands.append(Command(
            name=data.get("name") or path.stem,
            description=data.get("description", ""),
            prompt=data.get("prompt", ""),
            argument_hint=data.get("argumentHint", ""),
            allowed_tools=list(data.get("allowedTools", [])),
            disallowed_tools=list(data.get("disallowedTools", [])),
            scope=scope,
        ))
    return commands


def save_command(directory: Path, command: Command) -> Path:
    path = directory / f"{sanitize_name(command.name)}.json"
    atomic_write_text(path, json.dumps(command.to_dict(), indent=2) + "\n")
    return path


def load_rule(path: Path, scope: str = "") -> Rule:
    frontmatter, content = split_frontmatter(path.read_text(encoding="utf-8"))
    return Rule(name=path.stem, content=content, frontmatter=frontmatter, path=path, scope=scope)


def load_rules(directory: Path, scope: str = "") -> list[Rule]:
    """Load all rules/<name>.md files."""
    if not directory.is_dir():
        return []
    return [load_rule(path, scope) for path in sorted(directory.glob("*.md"))]


def load_skill(directory: Path, scope: str = "") -> Skill:
    """Load a skill from its directory.

    ABOUTME: Name comes from frontmatter, falling back to the directory name
    """
    frontmatter, content = split_frontmatter(
        (directory / SKILL_FILE_NAME).read_text(encoding="utf-8")
    )
    return Skill(
        name=str(frontmatter.get("name") or directory.name),
        description=str(frontmatter.get("description", "")),
        content=content,
        path=directory,
        scope=scope,
    )


def load_skills(directory: Path, scope: str = "") -> list[Skill]:
    """Load every skills/<name>/SKILL.md."""
    if not directory.is_dir():
        return []

    skills: list[Skill] = []
    for skill_dir in sorted(p for p in directory.iterdir() if p.is_dir()):
        if not (skill_dir / SKILL_FILE_NAME).is_file():
            continue
        try:
            skills.append(load_skill(skill_dir, scope))
        except OSError as e:
            logger.warning(f"Skipping unreadable skill {skill_dir}: {e}")
    return skills


def save_skill(directory: Path, skill: Skill) -> Path:
    """Write skill as <directory>/<name>/SKILL.md."""
    skill_dir = directory / sanitize_name(skill.name)
    atomic_write_text(
        skill_dir / SKILL_FILE_NAME,
        format_frontmatter({"name": skill.name, "description": skill.description}, skill.content),
    )
    return skill_dir
