"""Provisioner - cluster network provisioning and deployment orchestration"""

__version__ = "1.0.0"
