"""pr-digest: incremental GitHub pull request and review mirror."""

__version__ = "0.1.0"
