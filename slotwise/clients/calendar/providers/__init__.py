"""Calendar provider implementations."""
