"""
Kubernetes integration for Liqid composable infrastructure.

Modules:
- constants: annotation keys, linkage names, device type tables
- inventory: local mirror of the Liqid Cluster configuration
- fabric_client: REST client for the Liqid Director
- cluster_client: Kubernetes nodes, annotations, ConfigMaps and Secrets
- linkage: the Kubernetes-side record of which Liqid Cluster is in use
- plan: ordered, validated execution of configuration actions
- allocation: splitting a group's resources across worker nodes
- commands: handlers behind the command line tool
"""

__version__ = "0.3.0"
