"""Git queries.

Usage:
    from relpipe.git import Repository

    repo = Repository(Path("/path/to/repo"))
    branch = repo.current_branch()
"""

from relpipe.git.repository import GitError, Repository

__all__ = [
    "GitError",
    "Repository",
]
