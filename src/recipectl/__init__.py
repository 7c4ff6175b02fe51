"""Recipe dispatcher for the workspace's build and dev commands."""

__version__ = "0.3.0"
