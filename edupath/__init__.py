"""EduPath Backend.

Educational platform backend covering schools, classes, content,
assessments, assignments, diagnostic tests, learning plans, notifications
and a gamification layer of points, levels, badges and leaderboards.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
