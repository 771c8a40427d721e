"""
A subpackage for accessing and updating a bag's contents.

The :py:mod:`bag` module provides the BagDirectory class, the main interface
to a bag on disk.  It delegates its bookkeeping to the services provided by
the :py:mod:`manifest`, :py:mod:`fetch`, and :py:mod:`info` modules.
"""
