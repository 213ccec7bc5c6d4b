# Copyright (c) 2025-2026 Gowtham Adamane Rao. All Rights Reserved.
#
# Licensed under the Prosperity Public License 3.0.0 (the "License").
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License in the LICENSE file at the root
# of this repository, or at: https://prosperitylicense.com/versions/3.0.0
#
# Commercial use beyond a 30-day trial requires a separate license.
"""Exception types raised across the terminology bridge."""


class NotFoundError(LookupError):
    """A requested code does not exist in its terminology system."""

    def __init__(self, system: str, code: str):
        self.system = system
        self.code = code
        super().__init__(f"{system} code '{code}' not found")


class DuplicateCodeError(ValueError):
    """A code already exists within its terminology system."""

    def __init__(self, system: str, code: str):
        self.system = system
        self.code = code
        super().__init__(f"{system} code '{code}' already exists")


class MalformedInputError(ValueError):
    """Input could not be parsed at all, e.g. a CSV with broken quoting."""


class InvalidInputError(ValueError):
    """A required argument is missing or empty."""
