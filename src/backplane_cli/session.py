"""
Backplane session workspaces

A session is a local directory dedicated to one cluster, holding its own
kubeconfig and an environment file to source in a shell.
"""

import os
import re
import shlex
import shutil
from pathlib import Path
from typing import List, Mapping, Optional

from backplane_cli.config.loader import get_home_directory
from backplane_cli.exceptions import SessionError
from backplane_cli.info import BACKPLANE_DEFAULT_SESSION_DIRECTORY
from backplane_cli.logging_config import get_logger

logger = get_logger("session")

SESSION_ENV_FILE = ".ocenv"
SESSION_KUBE_DIR = ".kube"
SESSION_HISTORY_FILE = ".history"

_VALID_SESSION_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def get_session_root(session_directory: str = "", environ: Optional[Mapping[str, str]] = None) -> Path:
    """Get the directory holding all sessions.

    Args:
        session_directory: 'session-dir' from the configuration; relative
            paths are taken from the home directory
        environ: Environment mapping (default: os.environ)
    """
    environ = os.environ if environ is None else environ
    home = get_home_directory(environ)
    root = Path(session_directory).expanduser() if session_directory else Path(BACKPLANE_DEFAULT_SESSION_DIRECTORY)
    if not root.is_absolute():
        root = home / root
    return root


def session_name(alias: Optional[str] = None, cluster_id: Optional[str] = None) -> str:
    """Pick the session directory name from the alias or the cluster ID.

    Raises:
        SessionError: If neither is given or the name is not a plain
            directory name
    """
    name = alias or cluster_id
    if not name:
        raise SessionError(
            "A session alias or a cluster ID is required",
            remediation="Run 'ocm-backplane session <alias>' or pass --cluster-id",
        )
    if not _VALID_SESSION_NAME.match(name):
        raise SessionError(
            f"Invalid session name '{name}'",
            remediation="Use letters, digits, '.', '_' and '-' only",
        )
    return name


def render_session_env(session_path: Path, cluster_id: Optional[str] = None) -> str:
    """Render the environment file sourced inside a session.

    Every value is shell-quoted; the file is meant to be sourced.
    """
    lines = [
        "# backplane session environment",
        f"export KUBECONFIG={shlex.quote(str(session_path / SESSION_KUBE_DIR / 'config'))}",
        f"export HISTFILE={shlex.quote(str(session_path / SESSION_HISTORY_FILE))}",
        f"export PS1={shlex.quote(f'[{session_path.name}] ')}\"$PS1\"",
    ]
    if cluster_id:
        lines.append(f"export CLUSTER_ID={shlex.quote(cluster_id)}")
    return "\n".join(lines) + "\n"


def create_session(root: Path, name: str, cluster_id: Optional[str] = None) -> Path:
    """Create a session workspace, keeping an existing one.

    Args:
        root: Session root directory
        name: Session directory name
        cluster_id: Cluster the session targets

    Returns:
        Path of the session directory

    Raises:
        SessionError: If the directory cannot be created
    """
    session_path = root / name
    try:
        (session_path / SESSION_KUBE_DIR).mkdir(parents=True, exist_ok=True)
        os.chmod(session_path, 0o700)

        env_path = session_path / SESSION_ENV_FILE
        if not env_path.exists():
            env_path.write_text(render_session_env(session_path, cluster_id))
            os.chmod(env_path, 0o600)
            logger.debug("Wrote session environment %s", env_path)
    except OSError as e:
        raise SessionError(
            f"Unable to create session '{name}'",
            session_path=str(session_path),
            details=str(e),
        ) from e

    logger.info("Session '%s' ready at %s", name, session_path)
    return session_path


def delete_session(root: Path, name: str) -> bool:
    """Delete a session workspace.

    Returns:
        True if a session was deleted, False if none existed

    Raises:
        SessionError: If the directory cannot be removed
    """
    session_path = root / name
    if not session_path.is_dir():
        return False
    try:
        shutil.rmtree(session_path)
    except OSError as e:
        raise SessionError(
            f"Unable to delete session '{name}'",
            session_path=str(session_path),
            details=str(e),
        ) from e
    logger.info("Deleted session '%s'", name)
    return True


def list_sessions(root: Path, prefix: str = "") -> List[str]:
    """List session names, optionally filtered by prefix."""
    if not root.is_dir():
        return []
    return sorted(
        entry.name for entry in root.iterdir()
        if entry.is_dir() and entry.name.startswith(prefix)
    )
