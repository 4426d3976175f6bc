"""
Health snapshot reported by the worker node

The snapshot is rebuilt from live dstack telemetry on every request,
nothing is cached between requests.
"""
import enum
import json
import logging
from dataclasses import dataclass
from typing import List, Optional, Dict

from dstack_backend.errors import TelemetryError
from dstack_backend.constants import PROTOCOL_VERSION, TOPIC

log = logging.getLogger('dstack_backend')


class WorkerStatus(enum.Enum):
    AVAILABLE = 1
    UNAVAILABLE = 2

    def to_json(self):
        return self.name.capitalize()


@dataclass
class GpuInfo:
    """
    Attributes:
        slot (str): PCI slot of the accelerator
        product_id (str): vendor product identifier
        description (str): model name, eg "NVIDIA H100 80GB HBM3"
        is_free (bool): the GPU is not attached to a workload
    """
    slot: str
    product_id: str
    description: str
    is_free: bool

    def to_json(self):
        return {
            'slot': self.slot,
            'product_id': self.product_id,
            'description': self.description,
            'is_free': self.is_free
        }


def gpu_from_json(data: Dict) -> GpuInfo:
    if not isinstance(data['is_free'], bool):
        raise ValueError("is_free must be a boolean")
    return GpuInfo(slot=str(data['slot']),
                   product_id=str(data['product_id']),
                   description=str(data['description']),
                   is_free=data['is_free'])


@dataclass
class GpuList:
    gpus: List[GpuInfo]
    allow_attach_all: bool

    def to_json(self):
        return {
            'gpu_count': len(self.gpus),
            'free_count': len([gpu for gpu in self.gpus if gpu.is_free]),
            'gpus': [gpu.to_json() for gpu in self.gpus],
            'allow_attach_all': self.allow_attach_all
        }


def gpu_list_from_json(data: Dict) -> GpuList:
    """Parse a dstack ListGpus response, raises TelemetryError if it is malformed"""
    try:
        return GpuList(gpus=[gpu_from_json(item) for item in data['gpus']],
                       allow_attach_all=bool(data['allow_attach_all']))
    except (KeyError, TypeError, ValueError) as e:
        raise TelemetryError("Failed to parse JSON: %r" % e) from e


@dataclass
class HealthSnapshot:
    version: str
    topic: str
    pubkeys: List[str]
    status: WorkerStatus
    metadata: Optional[str]
    ip_address: Optional[str] = None

    def to_json(self):
        return {
            'version': self.version,
            'topic': self.topic,
            'pubkeys': self.pubkeys,
            'status': self.status.to_json(),
            'metadata': self.metadata,
            'ip_address': self.ip_address
        }


class HealthAggregator:
    """
    Builds a HealthSnapshot from the telemetry source.

    Parameters:
        source: object with an async ``list_gpus()`` returning a GpuList and
            raising TelemetryError on failure
        public_key: the node identity reported in ``pubkeys``
        ip_address: optional address of this node
    """

    def __init__(self, source, public_key: str, ip_address: Optional[str] = None):
        self.source = source
        self.public_key = public_key
        self.ip_address = ip_address

    async def snapshot(self) -> HealthSnapshot:
        try:
            gpu_list = await self.source.list_gpus()
        except TelemetryError as e:
            log.error("Failed to connect to dstack: %s" % e)
            return self._build(WorkerStatus.UNAVAILABLE, "Error: %s" % e)

        log.info("DStack is available with %d GPUs" % len(gpu_list.gpus))
        # no accelerators means the node cannot take work
        if len(gpu_list.gpus) == 0:
            status = WorkerStatus.UNAVAILABLE
        else:
            status = WorkerStatus.AVAILABLE
        return self._build(status, json.dumps(gpu_list.to_json()))

    def _build(self, status: WorkerStatus, metadata: str) -> HealthSnapshot:
        return HealthSnapshot(version=PROTOCOL_VERSION,
                              topic=TOPIC,
                              pubkeys=[self.public_key],
                              status=status,
                              metadata=metadata,
                              ip_address=self.ip_address)
