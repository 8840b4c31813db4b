# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
mergeat CLI

Usage:
    merge-at comment --repository owner/repo --pr-number 12 --comment-body "@merge-at ..."
    merge-at scheduler
"""

from .main import cli, main

__all__ = ['cli', 'main']
