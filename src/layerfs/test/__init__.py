# Copyright (c) layerfs Developers.
# See LICENSE for details.

"""
Tests for L{layerfs}.
"""
