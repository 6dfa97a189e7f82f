import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "service": "github",
    "branch": "main",
    "gitlab_base_url": "https://gitlab.com",
    "branch_prefix": "gitpost_",
    "commit_message": "Add gitpost data",
    "moderation": True,
    "format": "yml",  # serialization of committed entries: yml | json
    "site_name": None,
    "notifications": False,
    "mail_domain": None,
    "mail_api_base_url": "https://api.mailgun.net/v3",
    "from_address": "noreply@gitpost.dev",
    "from_name": "gitpost",
}


def load_config(config_path: str = ".gitpost.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .gitpost.yml in the current directory
      3. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Credentials only ever come from the environment, never from the file.
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["gitlab_token"] = os.environ.get("GITLAB_TOKEN")
    config["mailgun_api_key"] = os.environ.get("MAILGUN_API_KEY")
    config["webhook_secret"] = os.environ.get("GITPOST_WEBHOOK_SECRET")

    return config
