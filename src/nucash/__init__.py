"""NuCash system configuration service."""
