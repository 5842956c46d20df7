# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pydantic request/response models for the HTTP API.

JSON field names are camelCase on the wire; Python code uses snake_case
attribute names.
"""
