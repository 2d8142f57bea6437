import os
import shutil
from pathlib import Path
import tempfile
import pytest


@pytest.fixture(scope="session", autouse=True)
def isolate_home_config():
    """Temporarily move any existing user-level config out of the way.

    Tests expect the built-in defaults. This fixture moves the user's
    config file aside and clears token environment variables for the
    duration of the test session, restoring both afterwards.
    """
    config_path = Path.home() / ".pr_diff_context" / "config.json"
    backup_dir = None
    moved = False
    if config_path.exists():
        backup_dir = Path(tempfile.mkdtemp(prefix="prdiff_backup_"))
        shutil.move(str(config_path), str(backup_dir / "config.json"))
        moved = True

    saved_env = {}
    for name in ("GITHUB_TOKEN", "AZURE_DEVOPS_TOKEN"):
        if name in os.environ:
            saved_env[name] = os.environ.pop(name)

    try:
        yield
    finally:
        os.environ.update(saved_env)
        if moved and backup_dir is not None:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(backup_dir / "config.json"), str(config_path))
            shutil.rmtree(str(backup_dir), ignore_errors=True)
