"""
exceptions that can be raised while accessing or updating a bag's contents
"""
from contextlib import contextmanager

from bagit import BagError, BagValidationError
from fs.errors import FSError

class ConflictError(BagError):
    """
    an exception indicating that an operation would put a file where one
    already exists (or is already declared to exist, as with a fetch.txt
    entry).
    """
    def __init__(self, path, message=None):
        """
        :param str path:     the conflicting path
        :param str message:  the exception's message, overriding the default
                             (generated from the path)
        """
        self.path = path
        if not message:
            message = "Bag file exists: " + path
        super(ConflictError, self).__init__(message)

class NotFoundError(BagError):
    """
    an exception indicating that the target of an operation does not exist
    """
    def __init__(self, path, message=None):
        self.path = path
        if not message:
            message = "Bag file does not exist: " + path
        super(NotFoundError, self).__init__(message)

class IOFailure(BagError):
    """
    an exception indicating that a file or directory could not be created,
    read, or written.  The underlying error, when there is one, is available
    as the cause attribute.
    """
    def __init__(self, message, path=None, cause=None):
        self.path = path
        self.cause = cause
        super(IOFailure, self).__init__(message)

class UnsafePathError(BagError):
    """
    an exception indicating that a path points outside of the bag (or outside
    of the part of the bag it was meant for)
    """
    def __init__(self, path, message=None):
        self.path = path
        if not message:
            message = "Unsafe bag path: " + repr(path)
        super(UnsafePathError, self).__init__(message)

class ManifestParseError(BagError):
    """
    an exception indicating that a line of a manifest (or of fetch.txt)
    could not be parsed.
    """
    def __init__(self, filename, lineno, line, message=None):
        """
        :param str filename:  the name of the file being read
        :param int lineno:    the (1-based) number of the offending line
        :param str line:      the text of the offending line
        """
        self.filename = filename
        self.lineno = lineno
        self.line = line
        if not message:
            message = "{0}, line {1}: malformed entry: {2!r}".format(filename,
                                                                     lineno,
                                                                     line)
        super(ManifestParseError, self).__init__(message)

class UnsupportedAlgorithm(BagError):
    """
    an exception indicating that a checksum algorithm is not available
    """
    def __init__(self, algorithm, message=None):
        self.algorithm = algorithm
        if not message:
            message = "Unsupported checksum algorithm: " + str(algorithm)
        super(UnsupportedAlgorithm, self).__init__(message)

class ValidationFailure(BagValidationError):
    """
    An exception indicating that a bag failed verification.

    It carries along the full verification outcome as a VerificationReport
    instance ("report").
    """
    def __init__(self, report):
        self.report = report

        failures = report.failures()
        if len(failures) == 0:
            # shouldn't happen
            msg = "Unknown bag verification failure"
        elif len(failures) == 1:
            msg = failures[0]
        else:
            msg = "{0} verification problems detected".format(len(failures))

        super(ValidationFailure, self).__init__(msg, failures)

    def __str__(self):
        failures = self.details
        if len(failures) < 2:
            return self.message

        out = self.message
        if len(failures) > 3:
            out += ", including"
        out += ":"
        for f in failures[0:3]:
            out += "\n * " + f
        return out

@contextmanager
def convert_fs_errors(action, path=None):
    """
    a context manager that converts filesystem errors raised by the fs module
    (or by the os module) into IOFailure exceptions.

    :param str action:  a verb phrase describing the operation (e.g.
                        "write manifest"); used in the exception message
    :param str path:    the path being operated on
    """
    try:
        yield
    except (FSError, OSError) as ex:
        msg = "Unable to {0}".format(action)
        if path:
            msg += " ({0})".format(path)
        raise IOFailure(msg + ": " + str(ex), path, ex) from ex
