"""
Training Manager - Keep Galaxy group membership and training roles in sync with a schedule.

This package reconciles a remote Galaxy identity directory (users, roles, groups)
against a declarative TOML schedule describing which people belong to each group
and during which date windows each group is in training.
"""

__version__ = "1.0.0"
__author__ = "Training Manager Team"
