import os

from .loader import section


class Core:
    def __init__(self, config: dict | None = None) -> None:
        discord_cfg = section(config, "discord")

        token_env = str(discord_cfg.get("token_env", "DISCORD_API_TOKEN"))
        self.DISCORD_API_TOKEN: str | None = os.getenv(token_env)

        required = [
            ("DISCORD_API_TOKEN", self.DISCORD_API_TOKEN),
        ]
        missing = [name for name, val in required if not val]
        if missing:
            raise ValueError(f"Missing environment variables: {', '.join(missing)}")
