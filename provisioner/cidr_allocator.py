"""CIDR validation and subnet allocation for cluster networks

Each cluster owns one private VPC block. The block is split into 16 equal
slots; the first nine become three subnet tiers across three availability
zones, in a fixed order:

    slot 0-2  public       AZ1..AZ3
    slot 3-5  private app  AZ1..AZ3
    slot 6-8  private db   AZ1..AZ3
    slot 9-15 unassigned

Example for 10.201.0.0/16:
    public      10.201.0.0/20   10.201.16.0/20  10.201.32.0/20
    private app 10.201.48.0/20  10.201.64.0/20  10.201.80.0/20
    private db  10.201.96.0/20  10.201.112.0/20 10.201.128.0/20

Everything here is a pure function of its inputs.
"""

import ipaddress
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from provisioner.constants import (
    AVAILABILITY_ZONE_COUNT,
    MIN_SUBNET_PREFIX,
    PRIVATE_NETWORKS,
    SUBNET_SPLIT_BITS,
    SUBNET_TIERS,
)
from provisioner.exceptions import ValidationError

# Strict dotted quad with prefix; ipaddress alone accepts forms like "10.0.0.0"
CIDR_PATTERN = re.compile(
    r"^(?:(?:25[0-5]|2[0-4][0-9]|1[0-9][0-9]|[1-9]?[0-9])\.){3}"
    r"(?:25[0-5]|2[0-4][0-9]|1[0-9][0-9]|[1-9]?[0-9])/(?:[0-9]|[12][0-9]|3[0-2])$"
)

_PRIVATE_BLOCKS = tuple(ipaddress.ip_network(block) for block in PRIVATE_NETWORKS)


@dataclass(frozen=True)
class SubnetAllocation:
    """Nine subnet CIDRs: three tiers across three availability zones."""

    vpc_cidr: str
    public: tuple
    private_app: tuple
    private_db: tuple

    @property
    def all_subnets(self) -> List[str]:
        """All subnets in allocation order."""
        return [*self.public, *self.private_app, *self.private_db]

    def to_dict(self) -> Dict[str, List[str]]:
        """Convert to dictionary for serialization."""
        tiers = (self.public, self.private_app, self.private_db)
        return {name: list(subnets) for name, subnets in zip(SUBNET_TIERS, tiers)}


@dataclass(frozen=True)
class CidrInfo:
    """Network details for a CIDR block."""

    network: str
    broadcast: str
    prefix_length: int
    host_count: int


def _parse(cidr: str) -> Optional[ipaddress.IPv4Network]:
    """Parse a strict IPv4 CIDR (host bits must be zero)."""
    if not isinstance(cidr, str) or not CIDR_PATTERN.match(cidr.strip()):
        return None
    try:
        return ipaddress.IPv4Network(cidr.strip(), strict=True)
    except ValueError:
        return None


def validate_cidr(candidate: str) -> bool:
    """
    Check that a CIDR is a valid IPv4 block inside RFC 1918 space.

    Args:
        candidate: CIDR string (e.g., "10.201.0.0/16")

    Returns:
        True if syntactically valid and fully private
    """
    network = _parse(candidate)
    if network is None:
        return False
    return any(network.subnet_of(block) for block in _PRIVATE_BLOCKS)


def require_valid_cidr(candidate: str) -> ipaddress.IPv4Network:
    """
    Parse a CIDR, raising if it is not a private IPv4 block.

    Raises:
        ValidationError: If malformed or outside RFC 1918
    """
    if not validate_cidr(candidate):
        raise ValidationError(
            "CIDR must be a valid private IPv4 CIDR block (RFC 1918)",
            context=f"Got: {candidate!r}",
        )
    return _parse(candidate)


def find_overlaps(candidate: str, existing: Iterable[str]) -> List[str]:
    """
    List existing CIDRs that intersect the candidate.

    Covers exact duplicates and containment in either direction.
    Unparseable entries in ``existing`` are ignored.

    Args:
        candidate: CIDR being checked
        existing: CIDRs already assigned to live clusters in the same scope

    Returns:
        Overlapping CIDRs, in input order

    Raises:
        ValidationError: If the candidate itself is invalid
    """
    network = _parse(candidate)
    if network is None:
        raise ValidationError(
            "CIDR must be a valid IPv4 CIDR block", context=f"Got: {candidate!r}"
        )

    overlapping = []
    for other in existing:
        other_network = _parse(other)
        if other_network is not None and network.overlaps(other_network):
            overlapping.append(other)
    return overlapping


def overlaps(candidate: str, existing: Iterable[str]) -> bool:
    """True if the candidate intersects any existing CIDR."""
    return len(find_overlaps(candidate, existing)) > 0


def allocate_subnets(vpc_cidr: str) -> SubnetAllocation:
    """
    Partition a VPC block into nine equal, non-overlapping subnets.

    Args:
        vpc_cidr: Private VPC CIDR, /24 or larger

    Returns:
        SubnetAllocation with public, private_app and private_db tiers

    Raises:
        ValidationError: If the block is invalid, not private, or too small
    """
    network = require_valid_cidr(vpc_cidr)

    subnet_prefix = network.prefixlen + SUBNET_SPLIT_BITS
    if subnet_prefix > MIN_SUBNET_PREFIX:
        raise ValidationError(
            f"VPC CIDR /{network.prefixlen} is too small to carve nine subnets",
            context=(
                f"Subnets would be /{subnet_prefix}; the smallest allowed is "
                f"/{MIN_SUBNET_PREFIX}, so the VPC must be "
                f"/{MIN_SUBNET_PREFIX - SUBNET_SPLIT_BITS} or larger"
            ),
        )

    slots = network.subnets(new_prefix=subnet_prefix)
    needed = AVAILABILITY_ZONE_COUNT * 3
    subnets = [str(next(slots)) for _ in range(needed)]

    zones = AVAILABILITY_ZONE_COUNT
    return SubnetAllocation(
        vpc_cidr=str(network),
        public=tuple(subnets[0:zones]),
        private_app=tuple(subnets[zones : zones * 2]),
        private_db=tuple(subnets[zones * 2 : zones * 3]),
    )


def cidr_info(cidr: str) -> CidrInfo:
    """
    Get network information from CIDR.

    Raises:
        ValidationError: If the CIDR is malformed
    """
    network = _parse(cidr)
    if network is None:
        raise ValidationError(
            "CIDR must be a valid IPv4 CIDR block", context=f"Got: {cidr!r}"
        )
    return CidrInfo(
        network=str(network.network_address),
        broadcast=str(network.broadcast_address),
        prefix_length=network.prefixlen,
        host_count=max(0, network.num_addresses - 2),
    )


def ip_in_cidr(ip: str, cidr: str) -> bool:
    """Check if an IP address is within a CIDR block."""
    network = _parse(cidr)
    if network is None:
        return False
    try:
        return ipaddress.IPv4Address(ip) in network
    except ValueError:
        return False
