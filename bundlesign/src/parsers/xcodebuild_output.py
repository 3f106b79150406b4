"""Grammar for the build tool's report of an automatically created profile.

The build output contains a block like:

        Provisioning Profile: "iOS Team Provisioning Profile: *"
                              (c48afb72-3423-4345-bca7-c31232d09b64)

The line after the label holds the new profile's UUID in parentheses.
"""

PROFILE_LABEL = "    Provisioning Profile: "


def parse_generated_profile_id(output: str) -> str:
    """Return the profile identifier; raises `ValueError` when the block is absent"""
    lines = [line for line in output.split("\n") if line]
    for index, line in enumerate(lines):
        if not line.startswith(PROFILE_LABEL):
            continue
        if index + 1 >= len(lines):
            break
        candidate = lines[index + 1].strip()
        if len(candidate) > 2 and candidate[0] == "(" and candidate[-1] == ")":
            return candidate[1:-1]
        raise ValueError(
            f"Expected a parenthesised profile identifier after the profile label, "
            f"got {candidate!r}"
        )
    raise ValueError("Failed to locate generated provisioning profile ID")
