# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services.

Each subpackage exposes one service class over an AsyncSession:
- taxonomy: protocol rubrics and diagnostic trees
- evaluation: scored attempts and study evaluation forms
- interaction: per-clip learner and reviewer submissions
"""
