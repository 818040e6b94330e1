# SPDX-License-Identifier: MIT
"""Core substitution engine."""
