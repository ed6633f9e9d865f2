# MIT License
# Copyright (c) 2025 Hashborn

from typing import Dict
from . import economic_model
from .economic_model import RewardConfig

# Global Constants
DENOM = "mina"
DECIMALS = 9                    # 1 MINA = 10**9 nanomina

class NetworkConfig:
    def __init__(self,
                 network_id: str,
                 reward_config: RewardConfig,
                 db_filename: str = "indexer.db",
                 log_level: str = "INFO"):
        self.network_id = network_id
        self.reward_config = reward_config
        self.db_filename = db_filename
        self.log_level = log_level

    def activate(self):
        """Make this network's reward parameters the process-wide ones."""
        global CURRENT_NETWORK
        CURRENT_NETWORK = self
        economic_model.REWARD_CONFIG = self.reward_config

NETWORKS: Dict[str, NetworkConfig] = {
    "devnet": NetworkConfig(
        network_id="devnet",
        reward_config=economic_model.DEVNET,
        log_level="DEBUG",
    ),
    "mainnet": NetworkConfig(
        network_id="mainnet",
        reward_config=economic_model.MAINNET,
    ),
}

# Default to devnet for now
CURRENT_NETWORK = NETWORKS["devnet"]
