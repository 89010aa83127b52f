"""Constants and the process environment seen by ScriptHaus."""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from scripthaus.errors import HomeDirError

VERSION = "0.4.0"

DEFAULT_PLAYBOOK_FILE = "scripthaus.md"
GLOBAL_DIR_NAME = "scripthaus"
STDIN_PLAYBOOK = "-"

SCRIPTHAUS_HOME_VAR = "SCRIPTHAUS_HOME"
HOME_VAR = "HOME"

SHELL_LANGUAGES = ("sh", "bash", "zsh", "tcsh", "ksh", "fish")
PYTHON_LANGUAGES = ("python", "python2", "python3")
NODE_LANGUAGES = ("js", "node")
ALLOWED_LANGUAGES = frozenset(SHELL_LANGUAGES + PYTHON_LANGUAGES + NODE_LANGUAGES)


@dataclass(frozen=True)
class Environment:
    """Snapshot of the environment variables and working directory.

    Passed explicitly into the resolver so tests can supply fixed values
    without touching the real process state.

    Attributes:
        variables: Environment variables (name -> value)
        cwd: Absolute path of the working directory
    """
    variables: Mapping[str, str] = field(default_factory=dict)
    cwd: str = "/"

    @classmethod
    def from_os(cls) -> "Environment":
        """Build an Environment from the running process."""
        return cls(variables=dict(os.environ), cwd=os.getcwd())

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.variables.get(name, default)

    def scripthaus_home(self) -> str:
        """Return the global playbook root.

        Uses $SCRIPTHAUS_HOME when set, otherwise $HOME/scripthaus.

        Raises:
            HomeDirError: if neither variable is set
        """
        sc_home = self.variables.get(SCRIPTHAUS_HOME_VAR, "")
        if sc_home:
            return sc_home
        home = self.variables.get(HOME_VAR, "")
        if not home:
            raise HomeDirError(
                f"cannot resolve scripthaus home directory "
                f"({SCRIPTHAUS_HOME_VAR} and {HOME_VAR} not set)"
            )
        return os.path.join(home, GLOBAL_DIR_NAME)
