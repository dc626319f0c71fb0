"""Models package."""

from .user import User
from .video import Video
from .video_view import VideoView
from .comment import Comment
from .tweet import Tweet
from .playlist import Playlist, PlaylistVideo
from .like import Like, LikeTarget
from .subscription import Subscription
