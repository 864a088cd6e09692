"""Command line arguments for the Detect script."""
from pathlib import Path

from detectgate.core.config import DetectConfig

UNMAP_PROPERTY = '--detect.project.codelocation.unmap=true'


def split_properties(properties: list[str]) -> list[str]:
    """Split whitespace separated scan properties into single arguments."""
    return [part for prop in properties for part in prop.split() if part]


def _non_empty(values: list[str]) -> bool:
    return len(values) > 0 and len(values[0]) > 0


def maven_build_arguments(config: DetectConfig) -> list[str]:
    maven_args = []
    if config.global_settings_file:
        maven_args += ['--global-settings', config.global_settings_file]
    if config.project_settings_file:
        maven_args += ['--settings', config.project_settings_file]
    if config.m2_path:
        maven_args.append(f"-Dmaven.repo.local={Path(config.m2_path).absolute()}")
    return maven_args


def build_detect_args(args: list[str], config: DetectConfig) -> list[str]:
    """
    Append the Detect arguments derived from `config` to `args`.

    Names, versions and groups may contain spaces, so they are wrapped as
    `"--key='value'"` for the shell that runs the script.
    """
    args = list(args)
    version_name = config.version_name
    scan_properties = split_properties(config.scan_properties)

    if config.scan_on_changes:
        args.append('--report')

    # Unmap removes every component of a code location skipped by the minimum scan interval
    if config.min_scan_interval > 0 and not config.unmap:
        args.append(
            f"--detect.blackduck.signature.scanner.arguments='--min-scan-interval={config.min_scan_interval}'",
        )

    if config.unmap:
        if UNMAP_PROPERTY not in scan_properties:
            args.append(UNMAP_PROPERTY)
    else:
        scan_properties = [p for p in scan_properties if p != UNMAP_PROPERTY]

    args.extend(scan_properties)

    args.append(f"--blackduck.url={config.server_url}")
    args.append(f"--blackduck.api.token={config.token}")
    args.append(f"\"--detect.project.name='{config.project_name}'\"")
    args.append(f"\"--detect.project.version.name='{version_name}'\"")

    if _non_empty(config.groups):
        args.append(f"\"--detect.project.user.groups='{','.join(config.groups)}'\"")

    if _non_empty(config.fail_on):
        args.append(f"--detect.policy.check.fail.on.severities={','.join(config.fail_on)}")

    code_location = config.code_location
    if not code_location and config.project_name:
        code_location = f"{config.project_name}/{version_name}"
    args.append(f"\"--detect.code.location.name='{code_location}'\"")

    if _non_empty(config.scan_paths):
        args.append(f"--detect.blackduck.signature.scanner.paths={','.join(config.scan_paths)}")

    if config.dependency_path:
        args.append(f"--detect.source.path={config.dependency_path}")
    else:
        args.append("--detect.source.path='.'")

    if config.included_package_managers:
        args.append(
            f"--detect.included.detector.types={','.join(config.included_package_managers).upper()}",
        )
    if config.excluded_package_managers:
        args.append(
            f"--detect.excluded.detector.types={','.join(config.excluded_package_managers).upper()}",
        )
    if config.maven_excluded_scopes:
        args.append(f"--detect.maven.excluded.scopes={','.join(config.maven_excluded_scopes).lower()}")
    if config.detect_tools:
        args.append(f"--detect.tools={','.join(config.detect_tools)}")

    maven_args = maven_build_arguments(config)
    if maven_args:
        args.append(f"\"--detect.maven.build.command='{' '.join(maven_args)}'\"")

    return args
