"""
Input validation and WIQL query sanitization.

Checks the WIQL text before it is submitted and escapes literals that are
interpolated into it.
"""

import re
from typing import Optional, List


class ValidationError(Exception):
    """Raised when input validation fails."""
    pass


# Field reference names are dotted identifiers, e.g. Microsoft.VSTS.Common.Priority
FIELD_NAME_PATTERN = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)+$')


class WiqlValidator:
    """Validator for WIQL (Work Item Query Language) queries."""

    MAX_QUERY_LENGTH = 32000  # 32KB limit per Azure DevOps documentation

    @staticmethod
    def validate(query: str) -> str:
        """
        Validate WIQL query syntax and structure.

        Args:
            query: The WIQL query to validate

        Returns:
            The validated query (unchanged)

        Raises:
            ValidationError: If query is invalid
        """
        if not query or not query.strip():
            raise ValidationError("WIQL query cannot be empty")

        if len(query) > WiqlValidator.MAX_QUERY_LENGTH:
            raise ValidationError(
                f"WIQL query exceeds maximum length of {WiqlValidator.MAX_QUERY_LENGTH} characters "
                f"(current length: {len(query)})"
            )

        query_upper = query.upper()

        if 'SELECT' not in query_upper:
            raise ValidationError("WIQL query must contain SELECT clause")

        if 'FROM' not in query_upper:
            raise ValidationError("WIQL query must contain FROM clause")

        if 'WORKITEMS' not in query_upper:
            raise ValidationError("WIQL query FROM clause must specify 'WorkItems'")

        if not WiqlValidator._check_balanced_brackets(query):
            raise ValidationError("WIQL query has unbalanced square brackets")

        return query

    @staticmethod
    def _check_balanced_brackets(query: str) -> bool:
        count = 0
        for char in query:
            if char == '[':
                count += 1
            elif char == ']':
                count -= 1
            if count < 0:
                return False
        return count == 0

    @staticmethod
    def sanitize_string_literal(value: Optional[str]) -> Optional[str]:
        """
        Escape single quotes so a value can sit inside a WIQL string literal.
        """
        if value is None:
            return None
        return value.replace("'", "''")


class FieldNameValidator:
    """Validator for field reference names used in column specs."""

    @staticmethod
    def validate(field_name: str) -> str:
        if not field_name or not field_name.strip():
            raise ValidationError("Field name cannot be empty")

        field_name = field_name.strip()
        if not FIELD_NAME_PATTERN.match(field_name):
            raise ValidationError(
                f"Invalid field reference name: '{field_name}'. "
                f"Expected a dotted name such as System.Title"
            )
        return field_name


def validate_wiql(query: str) -> str:
    """Validate WIQL query (convenience function)."""
    return WiqlValidator.validate(query)


def validate_field_name(field_name: str) -> str:
    """Validate a field reference name (convenience function)."""
    return FieldNameValidator.validate(field_name)


def validate_field_names(field_names: List[str]) -> List[str]:
    """Validate a list of field reference names."""
    return [validate_field_name(name) for name in field_names]


def sanitize_wiql_string(value: str) -> str:
    """Sanitize a string literal for WIQL (convenience function)."""
    return WiqlValidator.sanitize_string_literal(value)
