"""Progress reporting and cooperative cancellation of file parsing."""

import typing as tp

from tqdm import tqdm

# Progress counter bound
MAX_PROGRESS = 100


class ProgressHandler:
    """
    Progress bar shared between a caller and a reader.

    The reader reports its position in the file, the caller
    requests cancellation with `cancel` or through `cancel_callback`.

    Parameters
    ----------
    desc : str, optional
        Progress bar description.
    disable : bool
        Do not display the progress bar.
    cancel_callback : callable, optional
        Called by `is_canceled`, parsing stops once it returns True.
    """

    def __init__(
        self,
        desc: tp.Optional[str] = None,
        disable: bool = True,
        cancel_callback: tp.Optional[tp.Callable[[], bool]] = None,
    ) -> None:
        self.progress = 0
        self._canceled = False
        self._cancel_callback = cancel_callback
        self._bar = tqdm(total=MAX_PROGRESS, desc=desc, disable=disable, unit="%")

    def set_progress(self, offset: int, length: int) -> None:
        """Report the current offset in a file of `length` bytes."""
        if length <= 0:
            return
        progress = min(MAX_PROGRESS, int(offset * MAX_PROGRESS / length))
        if progress > self.progress:
            self._bar.update(progress - self.progress)
            self.progress = progress

    def cancel(self) -> None:
        self._canceled = True

    def is_canceled(self) -> bool:
        if not self._canceled and self._cancel_callback is not None:
            self._canceled = bool(self._cancel_callback())
        return self._canceled

    def close(self) -> None:
        self._bar.close()
