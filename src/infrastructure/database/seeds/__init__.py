# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database seed package.

This package contains seed data for initializing databases:
- Demo seeds: staff accounts, classes, students, sample notifications
"""

from src.infrastructure.database.seeds.demo import DEFAULT_PASSWORD, seed_demo_database

__all__ = ["DEFAULT_PASSWORD", "seed_demo_database"]
