"""Global constants for the deployment engine.

Environment names and well-known identifiers shared across components.
"""

ENV_DEVELOPMENT = "development"
ENV_STAGING = "staging"
ENV_PRODUCTION = "production"

KNOWN_ENVIRONMENTS = (ENV_DEVELOPMENT, ENV_STAGING, ENV_PRODUCTION)

# Actor id used when the engine itself performs an action
SYSTEM_ACTOR = "system"

# Build log stage names used by the monitor outside of pipeline stages
LOG_STAGE_HEALTH_CHECK = "health_check"
LOG_STAGE_ERROR = "error"
LOG_STAGE_MONITOR = "monitor"
