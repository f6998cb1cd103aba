"""Configuration constants for genomicdao-deployments library."""

# Network configuration, mirrors the hardhat config of the contracts repo.
# Each network's RPC URL can be overridden through its environment variable.
NETWORK_CONFIG = {
    "lifeNetwork": {
        "chain_id": 8386,
        "chain_name": "LIFE Subnet",
        "rpc_url": (
            "http://127.0.0.1:9650/ext/bc/"
            "2DRnyQGGPuypaPCvC3FkpZqjZyHQBskd2nmGrba2Jv4CVGx24X/rpc"
        ),
        "default_rpc_env": "LIFE_RPC_URL",
    },
    "localhost": {
        "chain_id": 31337,
        "chain_name": "Hardhat Local",
        "rpc_url": "http://127.0.0.1:8545",
        "default_rpc_env": "LOCAL_RPC_URL",
    },
}

DEFAULT_NETWORK = "lifeNetwork"

# Contracts of the fixed controller plan (hardhat artifact names)
ASSET_CONTRACTS = ("GeneNFT", "PostCovidStrokePrevention")
CONTROLLER_CONTRACT = "Controller"

# Controller getters that must resolve to the asset contracts, keyed by artifact
CONTROLLER_LINK_GETTERS = {
    "GeneNFT": "geneNFT",
    "PostCovidStrokePrevention": "pcspToken",
}

# Minimal OpenZeppelin Ownable ABI, used when an artifact omits these entries
OWNABLE_ABI = [
    {
        "type": "function",
        "name": "owner",
        "inputs": [],
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "transferOwnership",
        "inputs": [{"name": "newOwner", "type": "address"}],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
]

# Seconds
DEFAULT_REQUEST_TIMEOUT = 30
DEFAULT_CONFIRMATION_TIMEOUT = 120
DEFAULT_POLL_INTERVAL = 1.0

# Environment variables read by config.load_config
ENV_PRIVATE_KEY = "DEPLOYER_PRIVATE_KEY"
ENV_DEPLOYER_ADDRESS = "DEPLOYER_ADDRESS"
ENV_ARTIFACTS_DIR = "DEPLOY_ARTIFACTS_DIR"
ENV_CONFIRMATION_TIMEOUT = "DEPLOY_CONFIRMATION_TIMEOUT"
ENV_STRICT_VERIFICATION = "DEPLOY_STRICT_VERIFICATION"
