# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Schema migrations.

Contains migrations for:
- Users (reference table)
- Protocol rubrics and diagnostic trees
- Reference vocabularies
- Evaluation attempts, responses and study evaluation forms
- Clip interactions
"""
