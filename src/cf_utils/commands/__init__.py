"""Commands layer - CLI facade over operations."""

from cf_utils.commands.bucket import empty, upload
from cf_utils.commands.deploy import deploy
from cf_utils.commands.destroy import destroy
from cf_utils.commands.logs import logs
from cf_utils.commands.outputs import outputs
from cf_utils.commands.params import params

__all__ = [
    "deploy",
    "destroy",
    "outputs",
    "empty",
    "upload",
    "params",
    "logs",
]
