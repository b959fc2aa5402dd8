"""
Maps engine cues to sound files for the host to play.

The engine never plays anything itself. A host wires CuePlayer.handle to
TimerEngine.on_event and supplies the function that actually makes noise.
"""

import logging
from pathlib import Path
from typing import Callable, Dict, Optional

import config

logger = logging.getLogger(__name__)


class CuePlayer:
    """Resolves cue names to sound files and hands them to a player."""

    def __init__(self, play: Optional[Callable[[Path], None]] = None,
                 sounds_dir: Optional[Path] = None,
                 sounds: Optional[Dict[str, str]] = None):
        """
        Args:
            play: Called with the sound file path. None disables sound.
            sounds_dir: Directory holding the sound files.
            sounds: Cue name -> file name (defaults to config.CUE_SOUNDS).
        """
        self.play = play
        self.sounds_dir = sounds_dir or config.SOUNDS_DIR
        self.sounds = sounds if sounds is not None else dict(config.CUE_SOUNDS)
        self.muted = False

        if self.play is not None and not self.sounds_dir.is_dir():
            logger.info(f"No sound directory at {self.sounds_dir}, cues will be silent")

    def sound_for(self, cue: str) -> Optional[Path]:
        file_name = self.sounds.get(cue)
        if file_name is None:
            return None
        return self.sounds_dir / file_name

    def handle(self, cue: str) -> bool:
        """
        Play the sound for a cue.

        Returns:
            True if the player was called.
        """
        if self.muted or self.play is None:
            return False

        sound_file = self.sound_for(cue)
        if sound_file is None:
            logger.warning(f"Unknown cue: {cue}")
            return False
        if not sound_file.exists():
            logger.debug(f"Sound file not found for {cue}: {sound_file}")
            return False

        try:
            self.play(sound_file)
        except OSError as e:
            logger.warning(f"Sound playback error: {e}")
            return False
        return True
