"""Platform accessibility drivers.

``deskflow.drivers.uia`` needs Windows and the ``uia`` extra; import it
directly where it is used.
"""
