"""Grammar for the keystore's code signing identity listing.

The listing looks like:

      1) 52635337831A02427192D4FC5EC8528323456F17 "Apple Development: Jane Doe (ABCD1234)"
      2) 00112233445566778899AABBCCDDEEFF00112233 "Apple Distribution: Example Corp (TEAM123)"
         2 valid identities found

Every entry is a 40 character hex id, one space, then the display name in
double quotes running to the last quote on the line. The name may itself
contain spaces and quotes, so it is never split on a delimiter.
"""

import re
from typing import List

from bundlesign.src.core.errors import IdentityParseError
from bundlesign.src.core.identity import Identity

_ORDINAL_PREFIX = re.compile(r"^\d+\)\s+")
_IDENTITY_LINE = re.compile(r'^(?P<id>[0-9A-Fa-f]{40}) "(?P<name>.*)"$')
_SUMMARY_LINE = re.compile(r"^\d+ (?:valid )?identit(?:y|ies) found$")


def parse_identity_line(line: str) -> Identity:
    """Parse a single listing entry; raises `IdentityParseError` on any other shape"""
    text = _ORDINAL_PREFIX.sub("", line.strip(), count=1)
    match = _IDENTITY_LINE.match(text)
    if not match:
        raise IdentityParseError(line, line)
    return Identity(id=match.group("id"), display_name=match.group("name"))


def parse_identity_list(output: str) -> List[Identity]:
    """Parse the whole listing.

    A single malformed line fails the entire parse: a silently shortened
    list could make a later substring lookup pick an unintended identity.
    """
    identities = []
    for line in output.splitlines():
        stripped = line.strip()
        if not stripped or _SUMMARY_LINE.match(stripped):
            continue
        try:
            identities.append(parse_identity_line(line))
        except IdentityParseError:
            raise IdentityParseError(line, output)
    return identities
