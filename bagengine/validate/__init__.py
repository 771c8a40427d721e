"""
This module provides classes and functions for verifying bags.
"""
from .base import (Validator, ManifestReport, VerificationReport,
                   ChecksumMismatch, ValidationFailure)
from .bag import BagValidator, validate_bag
