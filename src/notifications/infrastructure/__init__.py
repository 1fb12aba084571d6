"""
Notifications Infrastructure Layer
===================================

Infrastructure implementations for the notifications module:
- Audio: output device, sound resources, audio subsystem
- Realtime: change-stream transport and subscription handles
"""

from notifications.infrastructure.audio import (
    AudioOutput,
    SubprocessAudioOutput,
    SoundResource,
    AudioSubsystem,
)
from notifications.infrastructure.realtime import (
    MutationStream,
    SSEMutationStream,
    Subscription,
    iter_sse,
)

__all__ = [
    "AudioOutput",
    "SubprocessAudioOutput",
    "SoundResource",
    "AudioSubsystem",
    "MutationStream",
    "SSEMutationStream",
    "Subscription",
    "iter_sse",
]
