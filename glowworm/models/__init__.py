from glowworm.models.media import MediaAnalysis, MediaFile
from glowworm.models.user import User

__all__ = ["MediaAnalysis", "MediaFile", "User"]
