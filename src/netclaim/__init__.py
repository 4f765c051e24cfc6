"""
netclaim: static IP assignment for cluster-provisioned virtual machines.

Replaces DHCP on VSphereMachine / HAProxyLoadBalancer network devices with
addresses claimed from IPAM pools. The reconciler is idempotent and is meant to
be driven repeatedly by the controller loop until every device has an address.
"""

__version__ = "0.1.0"
