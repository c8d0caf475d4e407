"""Shared constants for the Liqid / Kubernetes integration."""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

# Annotation namespace reserved on Kubernetes worker nodes
K8S_ANNOTATION_PREFIX = "liqid.com"
K8S_ANNOTATION_MACHINE_NAME = "machine"
K8S_ANNOTATION_FPGA_ENTRY = "fpga"
K8S_ANNOTATION_GPU_ENTRY = "gpu"
K8S_ANNOTATION_LINK_ENTRY = "link"
K8S_ANNOTATION_MEMORY_ENTRY = "mem"
K8S_ANNOTATION_SSD_ENTRY = "ssd"

# Linkage store
K8S_CONFIG_NAMESPACE = "default"
K8S_CONFIG_NAME = "liqid"
K8S_CONFIG_MAP_IP_ADDRESS_KEY = "IPAddress"
K8S_CONFIG_MAP_GROUP_NAME_KEY = "LiqidGroup"
K8S_SECRET_NAMESPACE = "default"
K8S_SECRET_NAME = "liqid"
K8S_SECRET_CREDENTIALS_KEY = "Credentials"

# Label presented to the Liqid Director on login
LIQID_SDK_LABEL = "K8SInteg"

# The Director reports this for devices that carry no user description
NO_DESCRIPTION = "n/a"


class DeviceType(str, Enum):
    """Device types as reported by the fabric."""

    compute = "compute"
    gpu = "gpu"
    fpga = "fpga"
    memory = "memory"
    ssd = "ssd"
    ethernet_link = "ethernet_link"
    infiniband_link = "infiniband_link"
    fibre_channel_link = "fibre_channel_link"


class GeneralType(str, Enum):
    """Coarse device classes used for annotations and allocation."""

    cpu = "cpu"
    gpu = "gpu"
    fpga = "fpga"
    memory = "memory"
    ssd = "ssd"
    link = "link"


TYPE_CONVERSION_MAP: Mapping[DeviceType, GeneralType] = MappingProxyType({
    DeviceType.compute: GeneralType.cpu,
    DeviceType.gpu: GeneralType.gpu,
    DeviceType.fpga: GeneralType.fpga,
    DeviceType.memory: GeneralType.memory,
    DeviceType.ssd: GeneralType.ssd,
    DeviceType.ethernet_link: GeneralType.link,
    DeviceType.infiniband_link: GeneralType.link,
    DeviceType.fibre_channel_link: GeneralType.link,
})

ANNOTATION_KEY_FOR_DEVICE_TYPE: Mapping[GeneralType, str] = MappingProxyType({
    GeneralType.fpga: K8S_ANNOTATION_FPGA_ENTRY,
    GeneralType.gpu: K8S_ANNOTATION_GPU_ENTRY,
    GeneralType.memory: K8S_ANNOTATION_MEMORY_ENTRY,
    GeneralType.link: K8S_ANNOTATION_LINK_ENTRY,
    GeneralType.ssd: K8S_ANNOTATION_SSD_ENTRY,
})


def create_annotation_key_for(key_suffix: str) -> str:
    """Build a fully-qualified annotation key under the reserved prefix."""
    return f"{K8S_ANNOTATION_PREFIX}/{key_suffix}"


def create_annotation_key_for_device_type(gen_type: GeneralType) -> str:
    return create_annotation_key_for(ANNOTATION_KEY_FOR_DEVICE_TYPE[gen_type])


def is_liqid_annotation(key: str) -> bool:
    return key.startswith(K8S_ANNOTATION_PREFIX)


def has_description(description: Optional[str]) -> bool:
    return bool(description) and description != NO_DESCRIPTION
