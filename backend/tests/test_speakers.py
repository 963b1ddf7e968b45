import threading

from domain.speakers import SpeakerMap


def test_labels_are_dense_and_first_seen_ordered():
    speakers = SpeakerMap()

    labels = [speakers.label_for(sid) for sid in ["A", "B", "A", "C"]]

    assert labels == ["Speaker 1", "Speaker 2", "Speaker 1", "Speaker 3"]
    assert speakers.labels() == {"A": "Speaker 1", "B": "Speaker 2", "C": "Speaker 3"}
    assert speakers.speaker_count() == 3


def test_missing_id_maps_to_unknown_speaker():
    speakers = SpeakerMap()

    assert speakers.label_for(None) == "Speaker 1"
    assert speakers.label_for("") == "Speaker 1"
    assert speakers.label_for("Unknown") == "Speaker 1"
    assert speakers.speaker_count() == 1


def test_concurrent_labelling_never_duplicates_a_label():
    speakers = SpeakerMap()
    ids = [f"Guest-{i % 20}" for i in range(400)]
    barrier = threading.Barrier(8)

    def _worker(chunk):
        barrier.wait()
        for sid in chunk:
            speakers.label_for(sid)

    threads = [threading.Thread(target=_worker, args=(ids[i::8],)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    labels = speakers.labels()
    assert speakers.speaker_count() == 20
    assert sorted(labels.values(), key=lambda s: int(s.split()[-1])) == [f"Speaker {n}" for n in range(1, 21)]
