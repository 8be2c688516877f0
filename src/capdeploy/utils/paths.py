from pathlib import Path


def get_project_root() -> Path:
    """Get the project root directory.

    Walks up from the current working directory looking for a
    capdeploy.yaml or pyproject.toml. CI jobs run the CLI from the
    repository being deployed, not from the installed package location.

    Returns:
        Path to the project root directory
    """
    current = Path.cwd().resolve()

    for parent in [current, *current.parents]:
        if (parent / "capdeploy.yaml").exists() or (
            parent / "pyproject.toml"
        ).exists():
            return parent

    return current
