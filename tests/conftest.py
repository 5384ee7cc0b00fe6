import os
import warnings

# Ignore warnings from instrumentation packages
warnings.filterwarnings("ignore", category=DeprecationWarning, module="logfire.*")

# Keep the developer environment from switching on live or strict startup in tests
os.environ.update(
    {
        "LIVE_MEDIA_BASE_URL": "",
        "LIVE_STRICT_STARTUP": "false",
        "LOGFIRE_ENABLE": "false",
    }
)

from tests.fixtures.live_fixtures import *  # noqa: E402, F403
