"""Student Notifier Backend.

School back-office service: users, classes, students, and the
receptionist/teacher notification workflow with real-time and push
delivery.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
