from django_redisson.client.base import BaseClient
from django_redisson.client.default import Client
from django_redisson.client.geo import GeoLocation
from django_redisson.client.pipeline import Pipeline
from django_redisson.client.pubsub import Message, PubSub

__all__ = [
    "BaseClient",
    "Client",
    "GeoLocation",
    "Message",
    "Pipeline",
    "PubSub",
]
