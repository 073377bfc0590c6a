import enum


class DeploymentEnvironment(enum.Enum):
    """Where the gradebook is running; selects the ``config/env.d/<env>`` overlay."""

    Production = "production"
    Staging = "staging"
    Development = "development"
    Test = "test"
    Local = "local"

    @property
    def config_dirs(self) -> tuple[str, ...]:
        """Configuration directories relative to the config root, lowest precedence first."""
        if self is DeploymentEnvironment.Local:
            # a local checkout runs on the root defaults alone
            return (".",)
        return (".", f"env.d/{self.value}")
