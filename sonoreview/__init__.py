"""SonoReview core.

Protocol-driven diagnostic taxonomy and evaluation data layer for
ultrasound-training video review: scoring rubrics, differential-diagnosis
trees, scored review attempts and per-clip learner/reviewer interactions.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
