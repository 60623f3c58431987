# SPDX-License-Identifier: ISC
#
# assertions.py
# Pattern checks on command output
#

"""
Output assertions.

Patterns are regular expressions searched anywhere in the output, a match
on any substring is enough. `match()` is fatal and raises
`AssertionMismatch`, `match_nonfatal()` only reports whether the pattern
was found and is what poll attempts use.
"""

import re

from convtest.errors import AssertionMismatch
from convtest.topolog import logger


def match_nonfatal(output, pattern):
    "Returns True if `pattern` is found in `output`."
    return re.search(pattern, output or "") is not None


def match(output, pattern, desc=None):
    """
    Raises `AssertionMismatch` if `pattern` isn't found in `output`.
    * `desc`: names the check in the failure message (host, target...).
    """
    if match_nonfatal(output, pattern):
        return

    logger.error(
        "%s: pattern '%s' not found in output:\n%s", desc or "match", pattern, output
    )
    raise AssertionMismatch(pattern, output, desc)


def output_matcher(executor, host, args, pattern):
    """
    Returns a poll attempt that runs `args` on `host` and reports whether the
    output matches `pattern`. Execution errors are left to propagate.
    """

    def _attempt():
        output = executor.execute(host, *args)
        return match_nonfatal(output, pattern), output

    _attempt.__name__ = "{}: {}".format(host, " ".join(args))
    return _attempt
