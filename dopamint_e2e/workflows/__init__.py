"""Dopamint user journeys built on the resilience engines."""

from .base import BasePage
from .create import AIModel, CreateWorkflow, collection_name
from .login import LoginWorkflow
from .mint import MintVerification, MintWorkflow, collection_address, token_url
from .search import SearchWorkflow, target_address
from .sell import SellWorkflow
from .wallet_setup import WalletSetupWorkflow

__all__ = [
    "BasePage",
    "LoginWorkflow",
    "CreateWorkflow",
    "AIModel",
    "collection_name",
    "MintWorkflow",
    "MintVerification",
    "collection_address",
    "token_url",
    "SearchWorkflow",
    "target_address",
    "SellWorkflow",
    "WalletSetupWorkflow",
]
