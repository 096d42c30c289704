"""auditbelt: workflow toolkit for Anchor program audits."""

__version__ = "0.4.0"
