import os

# Keep developer/CI azd settings from leaking into config-loading tests
for _name in (
    "AZURE_ENV_NAME",
    "AZURE_RESOURCE_GROUP",
    "AZURE_ACR_NAME",
    "AZURE_ACR_NAME_SRC",
    "CAPDEPLOY_ENVIRONMENT",
    "CAPDEPLOY_SOURCE_REPO",
    "GITHUB_OUTPUT",
):
    os.environ.pop(_name, None)

from tests.fixtures import *  # noqa: E402,F401,F403
