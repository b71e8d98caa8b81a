"""Numeric process exit codes for the ``peento`` command.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~peento.exceptions.PeentoError` subclass. Process
supervisors and shell wrappers can inspect the exit code to tell a broken
plugin apart from a bad configuration without parsing stderr.

Example::

    $ peento serve --plugin missing
    Error: Plugin 'missing' not found
    $ echo $?
    10  # EXIT_PLUGIN_ERROR
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred (including configuration problems)."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_PLUGIN_ERROR = 10
"""A plugin could not be found, attached, or initialised."""

EXIT_CALL_ERROR = 11
"""A named call failed in one of its pipeline stages."""
