"""
Starting the installed runtime.

Given an installation root, the launcher artifact is located and invoked
with the wrapper's remaining command-line arguments in a child process. Jar
launchers run on the JVM found through ``JAVA_HOME`` or ``PATH``; any other
launcher is executed directly.
"""

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

from wrapperkit.core.exceptions import LaunchError
from wrapperkit.core.filesystem import IS_WINDOWS
from wrapperkit.wrapper.installer import DEFAULT_LAUNCHER_PATH

logger = logging.getLogger(__name__)

DEFAULT_LAUNCHER_MAIN_CLASS = "org.apache.tools.ant.launch.Launcher"


@dataclass
class LaunchSettings:
    """How to start the installed runtime."""

    launcher_path: str = DEFAULT_LAUNCHER_PATH
    """Launcher artifact relative to the installation root"""

    main_class: str = DEFAULT_LAUNCHER_MAIN_CLASS
    """Entry point class for jar launchers"""


def find_launcher(install_root: Path, launcher_path: str) -> Optional[Path]:
    """
    Find the launcher artifact in an installation.

    Returns:
        Path to the launcher, or None if it isn't there
    """
    launcher = install_root / launcher_path
    return launcher if launcher.is_file() else None


def find_java(environ: Optional[Mapping[str, str]] = None) -> Optional[Path]:
    """Locate the java executable via JAVA_HOME, falling back to PATH."""
    environ = os.environ if environ is None else environ
    executable = "java.exe" if IS_WINDOWS else "java"

    java_home = environ.get("JAVA_HOME")
    if java_home:
        candidate = Path(java_home) / "bin" / executable
        if candidate.is_file():
            return candidate
        logger.warning(f"JAVA_HOME is set to {java_home} but {candidate} does not exist")

    found = shutil.which("java")
    return Path(found) if found else None


def build_command(
    install_root: Path,
    args: Sequence[str],
    settings: Optional[LaunchSettings] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> List[str]:
    """
    Build the command line that starts the runtime.

    Raises:
        LaunchError: If the launcher (or a JVM for jar launchers) can't be found
    """
    settings = settings or LaunchSettings()

    launcher = find_launcher(install_root, settings.launcher_path)
    if launcher is None:
        raise LaunchError(
            f"Could not locate the launcher {settings.launcher_path} in distribution "
            f"{install_root}!"
        )

    if launcher.suffix.lower() != ".jar":
        return [str(launcher), *args]

    java = find_java(environ)
    if java is None:
        raise LaunchError(
            "Could not find a java executable. Set JAVA_HOME or add java to PATH."
        )

    return [str(java), "-classpath", str(launcher), settings.main_class, *args]


def launch(
    install_root: Path,
    args: Sequence[str],
    settings: Optional[LaunchSettings] = None,
) -> int:
    """
    Run the installed runtime and wait for it.

    Args:
        install_root: Installation root returned by the installer
        args: Arguments passed through to the runtime
        settings: Optional launch settings

    Returns:
        Exit code of the runtime

    Raises:
        LaunchError: If the runtime can't be started
    """
    command = build_command(install_root, args, settings)
    logger.debug(f"Launching: {' '.join(command)}")

    try:
        completed = subprocess.run(command)
    except OSError as e:
        raise LaunchError(f"Could not start {command[0]}: {e}") from e

    return completed.returncode
