from __future__ import annotations

import re

from dockeropt.models import Rule

NPM_INSTALL_AFTER_COPY_ALL_PATTERN = re.compile(r"COPY\s+\.\s+\.[\s\S]*?RUN\s+(npm|yarn|pnpm)\s+install")
MANIFEST_COPY_BEFORE_INSTALL_PATTERN = re.compile(
    r"COPY\s+package\*?\.json[\s\S]*?RUN\s+(npm|yarn|pnpm)\s+(ci|install)"
)
NO_NAMED_STAGE_PATTERN = re.compile(r"^(?![\s\S]*FROM\s+\S+\s+AS\s+\w+)")
NAMED_STAGE_PATTERN = re.compile(r"FROM\s+\S+\s+AS\s+\w+", re.IGNORECASE)
FULL_NODE_IMAGE_PATTERN = re.compile(r"FROM\s+node:\d+(?!-(slim|alpine|bookworm-slim|bullseye-slim))")
SLIM_NODE_IMAGE_PATTERN = re.compile(r"FROM\s+node:\d+-(slim|alpine)")
DEV_DEPENDENCIES_INSTALL_PATTERN = re.compile(
    r"RUN\s+(npm|yarn)\s+(ci|install)(?![\s\S]*?(--production|--only=production|--omit=dev|npm\s+prune))"
)
PRODUCTION_ONLY_PATTERN = re.compile(r"(--production|--only=production|--omit=dev|npm\s+prune\s+--production)")
APT_INSTALL_WITHOUT_CLEANUP_PATTERN = re.compile(
    r"apt-get\s+install(?![\s\S]*?(apt-get\s+clean|rm\s+-rf\s+/var/lib/apt/lists))"
)
APT_CLEANUP_PATTERN = re.compile(r"apt-get\s+clean[\s\S]*?rm\s+-rf\s+/var/lib/apt/lists")
SPLIT_APT_RUN_PATTERN = re.compile(r"RUN\s+apt-get\s+update\s*\n\s*RUN\s+apt-get\s+install")
COMBINED_APT_RUN_PATTERN = re.compile(r"RUN\s+apt-get\s+update\s*&&\s*apt-get\s+install")
NO_NON_ROOT_USER_PATTERN = re.compile(r"^(?![\s\S]*USER\s+(?!root)\w+)")
NON_ROOT_USER_PATTERN = re.compile(r"USER\s+(node|app|www-data|\d+)")
RUN_CD_PATTERN = re.compile(r"RUN\s+cd\s+/")
WORKDIR_PATTERN = re.compile(r"WORKDIR\s+/")
MANIFEST_COPY_AFTER_COPY_ALL_PATTERN = re.compile(r"COPY\s+\.\s+\.[\s\S]*?COPY\s+package")
INSTALL_WITHOUT_CACHE_MOUNT_PATTERN = re.compile(
    r"RUN\s+(npm|yarn|pnpm)\s+(ci|install)(?![\s\S]*?--mount=type=cache)"
)
CACHE_MOUNT_PATTERN = re.compile(r"--mount=type=cache")

DOCKER_OPTIMIZATIONS: tuple[Rule, ...] = (
    Rule(
        name="Layer order",
        description="COPY before npm install",
        bad_pattern=NPM_INSTALL_AFTER_COPY_ALL_PATTERN,
        good_pattern=MANIFEST_COPY_BEFORE_INSTALL_PATTERN,
        remedy_text="Copy package*.json first, then npm install, then copy source",
        impact_level="high",
        build_time_impact_minutes=3,
        size_impact_mb=0,
    ),
    Rule(
        name="Multi-stage build",
        description="Has build stage",
        bad_pattern=NO_NAMED_STAGE_PATTERN,
        good_pattern=NAMED_STAGE_PATTERN,
        remedy_text="Separate build and runtime stages to reduce final image size",
        impact_level="high",
        build_time_impact_minutes=0,
        size_impact_mb=500,
    ),
    Rule(
        name="Slim base image",
        description="Using slim or alpine",
        bad_pattern=FULL_NODE_IMAGE_PATTERN,
        good_pattern=SLIM_NODE_IMAGE_PATTERN,
        remedy_text="Use node:X-slim or node:X-alpine for smaller base images",
        impact_level="medium",
        build_time_impact_minutes=0.5,
        size_impact_mb=300,
    ),
    Rule(
        name="Production dependencies",
        description="npm ci --production or prune",
        bad_pattern=DEV_DEPENDENCIES_INSTALL_PATTERN,
        good_pattern=PRODUCTION_ONLY_PATTERN,
        remedy_text="Add --production flag or npm prune --production after build",
        impact_level="medium",
        build_time_impact_minutes=0.5,
        size_impact_mb=100,
    ),
    Rule(
        name="Package manager cleanup",
        description="Cleanup after apt-get",
        bad_pattern=APT_INSTALL_WITHOUT_CLEANUP_PATTERN,
        good_pattern=APT_CLEANUP_PATTERN,
        remedy_text="Add && apt-get clean && rm -rf /var/lib/apt/lists/* after apt-get install",
        impact_level="medium",
        build_time_impact_minutes=0,
        size_impact_mb=50,
    ),
    Rule(
        name="Combined RUN commands",
        description="RUN commands combined",
        bad_pattern=SPLIT_APT_RUN_PATTERN,
        good_pattern=COMBINED_APT_RUN_PATTERN,
        remedy_text="Combine RUN apt-get update && apt-get install in single layer",
        impact_level="medium",
        build_time_impact_minutes=0.5,
        size_impact_mb=20,
    ),
    Rule(
        name="Non-root user",
        description="Running as non-root",
        bad_pattern=NO_NON_ROOT_USER_PATTERN,
        good_pattern=NON_ROOT_USER_PATTERN,
        remedy_text="Add USER directive to run as non-root for security",
        impact_level="low",
        build_time_impact_minutes=0,
        size_impact_mb=0,
    ),
    Rule(
        name="WORKDIR usage",
        description="Using WORKDIR instead of cd",
        bad_pattern=RUN_CD_PATTERN,
        good_pattern=WORKDIR_PATTERN,
        remedy_text="Use WORKDIR directive instead of RUN cd",
        impact_level="low",
        build_time_impact_minutes=0,
        size_impact_mb=0,
    ),
    Rule(
        name="Node modules caching",
        description="Node modules cached properly",
        bad_pattern=MANIFEST_COPY_AFTER_COPY_ALL_PATTERN,
        remedy_text="Ensure COPY package*.json comes before COPY . .",
        impact_level="high",
        build_time_impact_minutes=4,
        size_impact_mb=0,
    ),
    Rule(
        name="Build cache mount",
        description="Using BuildKit cache mounts",
        bad_pattern=INSTALL_WITHOUT_CACHE_MOUNT_PATTERN,
        good_pattern=CACHE_MOUNT_PATTERN,
        remedy_text="Use --mount=type=cache,target=/root/.npm for faster rebuilds",
        impact_level="medium",
        build_time_impact_minutes=1,
        size_impact_mb=0,
    ),
)


def rule_names(rules: tuple[Rule, ...] = DOCKER_OPTIMIZATIONS) -> list[str]:
    return [rule.name for rule in rules]


def select_rules(
    enabled_rules: list[str] | None = None,
    disabled_rules: list[str] | None = None,
    rules: tuple[Rule, ...] = DOCKER_OPTIMIZATIONS,
) -> tuple[Rule, ...]:
    """Return the catalogue subset picked by rule name, in catalogue order.

    Names are compared case-insensitively. Unknown names raise ``ValueError``.
    """
    known = {rule.name.lower() for rule in rules}
    enabled = {name.lower() for name in enabled_rules} if enabled_rules else None
    disabled = {name.lower() for name in disabled_rules or []}

    unknown = sorted((enabled or set()) - known) + sorted(disabled - known)
    if unknown:
        raise ValueError(f"Unknown rule name(s): {', '.join(unknown)}")

    return tuple(
        rule
        for rule in rules
        if rule.name.lower() not in disabled and (enabled is None or rule.name.lower() in enabled)
    )
