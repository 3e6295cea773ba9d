"""
l5dsuite - Linkerd integration test harness.

Creates KinD clusters, loads images, installs the control plane and runs
the go integration tests against it.
"""

__version__ = "0.1.0"
