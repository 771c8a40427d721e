"""
This module provides base classes and infrastructure for bag verification
"""
from ..access.report import ManifestReport, VerificationReport, ChecksumMismatch
from ..access.exceptions import ValidationFailure

class Validator(object):
    """
    a base class for a class that will apply validation tests to some
    target set at construction.

    This base implementation runs no tests; validate() by default simply
    returns an empty VerificationReport.  Subclasses should override
    validate() to run its tests and enter the results into the returned
    report.
    """

    def __init__(self, target):
        """
        initialize the validator

        :param str target:  a name indicating the target bag being validated.
        """
        self.target = target

    def validate(self):
        """
        run the embedded tests, returning a VerificationReport.
        """
        return VerificationReport(str(self.target))

    def is_valid(self):
        """
        run the embedded tests and return True if the target is valid.
        """
        return self.validate().is_valid()

    def ensure_valid(self, strict=False):
        """
        run the embedded tests; if the target is not valid, raise a
        ValidationFailure.

        :param bool strict:  if True, require that every check passes (see
                             VerificationReport.ok()), not just that the bag
                             is valid.
        :raise ValidationFailure:  if the tests fail
        :return:  the VerificationReport
        """
        report = self.validate()
        passed = (strict and report.ok()) or (not strict and report.is_valid())
        if not passed:
            raise ValidationFailure(report)
        return report
