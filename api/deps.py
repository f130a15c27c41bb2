# api/deps.py
from fastapi import Request

from config.settings import Settings
from gateways.generation import GenerationGateway
from gateways.persistence import PersistenceGateway


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> PersistenceGateway:
    return request.app.state.store


def get_generation(request: Request) -> GenerationGateway:
    return request.app.state.generation
