"""Record humanoid rig motion into VMD files"""

__version__ = "0.3.0"
