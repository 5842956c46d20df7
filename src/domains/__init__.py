# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for the Student Notifier service.

This package contains domain services that encapsulate business logic.
Services raise errors from src.domains.errors and never touch HTTP.

Domains:
    auth: Registration, login, tokens and password hashing.
    user: Account administration and push device registration.
    class_: Classes, rosters and teacher assignment.
    student: Student records and class moves.
    notification: Request/response workflow and retention.
"""
