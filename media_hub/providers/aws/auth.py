"""How media-hub authenticates against AWS for a given settings object."""


def describe_settings_identity(settings):
    """Profile and region used for control-plane calls, plus the roles handed to the services."""
    return {
        "profile_name": settings.profile or "default",
        "region": settings.region,
        "service_role_arn": settings.role_arn,
        "live_role_arn": settings.live_role_arn,
    }
