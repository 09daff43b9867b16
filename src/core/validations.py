import re

# Identity fields
USERNAME_MAX_LENGTH = 60
EMAIL_MAX_LENGTH = 255
PASSWORD_MAX_LENGTH = 128

# Validates a username without whitespace or control characters
# Example: "alice", "john.doe_2023"
USERNAME_VALIDATOR = re.compile(r"^[^\s\x00-\x1f]{1,60}$")
