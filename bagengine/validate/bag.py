"""
This module provides the validator implementation for bags on local disk.
It delegates the work to the bag's ManifestStore.
"""
from .base import Validator
from ..access.bag import BagDirectory

class BagValidator(Validator):
    """
    A validator that checks a bag's payload and tag files against its
    manifests.
    """

    def __init__(self, bag, tags=True):
        """
        initialize the validator for the given bag.

        :param bag:  the target bag, either as a BagDirectory or the path to
                     its root directory
        :param bool tags:  if True, the tag manifests will be checked too
        :raises NotFoundError:  if bag is a path to a directory that is not a
                     bag; nothing is created or written
        """
        if not isinstance(bag, BagDirectory):
            bag = BagDirectory(bag, create=False)
        super(BagValidator, self).__init__(bag)
        self.bag = bag
        self.tags = tags

    def validate(self):
        return self.bag.verify(self.tags)

def validate_bag(bag, strict=False):
    """
    verify the given bag, raising a ValidationFailure if it is not valid.

    :param bag:  the bag, either as a BagDirectory or the path to its root
                 directory
    :param bool strict:  if True, also require the tag manifests and the
                 Payload-Oxum to be correct
    :rtype: VerificationReport
    """
    return BagValidator(bag).ensure_valid(strict)
