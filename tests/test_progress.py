from psm_mappers.progress import MAX_PROGRESS, ProgressHandler


def test_progress_is_monotonic_and_bounded():
    progress = ProgressHandler()
    progress.set_progress(50, 200)
    assert progress.progress == 25
    progress.set_progress(10, 200)
    assert progress.progress == 25
    progress.set_progress(500, 200)
    assert progress.progress == MAX_PROGRESS
    progress.set_progress(10, 0)
    assert progress.progress == MAX_PROGRESS
    progress.close()


def test_cancel():
    progress = ProgressHandler()
    assert not progress.is_canceled()
    progress.cancel()
    assert progress.is_canceled()


def test_cancel_callback_is_sticky():
    answers = iter([False, True, False])
    progress = ProgressHandler(cancel_callback=lambda: next(answers))
    assert not progress.is_canceled()
    assert progress.is_canceled()
    assert progress.is_canceled()
