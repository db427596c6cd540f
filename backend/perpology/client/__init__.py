"""
Chat client: the controller that drives a chat view against the Perpology API.
"""
from perpology.client.api_client import ChatApiClient, ChatApiError
from perpology.client.controller import ClientChatController
from perpology.client.state import ChatTurn, ClientSessionState, ControllerPhase
from perpology.client.view import ChatView
from perpology.client.wallet import StaticWallet, WalletProvider, WalletUnavailable

__all__ = [
    "ChatApiClient",
    "ChatApiError",
    "ChatTurn",
    "ChatView",
    "ClientChatController",
    "ClientSessionState",
    "ControllerPhase",
    "StaticWallet",
    "WalletProvider",
    "WalletUnavailable",
]
