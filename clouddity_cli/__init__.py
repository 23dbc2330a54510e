"""
Clouddity CLI module.

Command line entrypoint (``clouddity``) wiring configuration, the OpenStack
provider and the Docker manager to the controller tasks.
"""
