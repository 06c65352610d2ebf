"""passbolt_sync: declarative reconciliation of Passbolt folders, passwords, groups, users and folder permissions."""

__version__ = "0.1.0"
