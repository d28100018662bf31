"""tokenbook - role-gated token bookkeeping."""

__version__ = "0.1.0"
