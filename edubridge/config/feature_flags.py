"""
Feature Flags Configuration

Centralized feature flag management for the backend.
All feature flags should be loaded from environment variables.
"""
import os


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


class FeatureFlags:
    """
    Deployment-level switches.

    Admin-editable toggles (comments, downloads, notifications) live in
    SystemSettings.platform; these flags gate whole code paths per deployment.
    """

    # Weighted text search over approved materials
    FEATURE_MATERIAL_SEARCH: bool = get_bool_env('FEATURE_MATERIAL_SEARCH', True)

    # Fall back to the single legacy `program` field when a lecturer has no
    # explicit teaching subjects or programmes
    FEATURE_LEGACY_PROGRAM_SCOPE: bool = get_bool_env('FEATURE_LEGACY_PROGRAM_SCOPE', True)

    # Admins may approve or reject any pending material
    FEATURE_ADMIN_MATERIAL_REVIEW: bool = get_bool_env('FEATURE_ADMIN_MATERIAL_REVIEW', True)

    @classmethod
    def get_all_flags(cls) -> dict:
        """Get all feature flags as a dictionary."""
        return {
            key: value
            for key, value in cls.__dict__.items()
            if not key.startswith('_') and isinstance(value, bool)
        }


# Singleton instance for easy importing
feature_flags = FeatureFlags()
