"""
Configuration file for pytest.

Lives at the repository root so the package imports without an install, and
defines which directories to ignore during test discovery.
"""

# Directories or files to ignore during test collection
collect_ignore_glob = [
    "build/*",
    "dist/*",
]
