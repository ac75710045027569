"""wtool augments a Bazel WORKSPACE file with new_go_repository entries."""

__version__ = "1.0.0"
