import pytest

from stateline.datatypes import State, SwapType
from stateline.db import CSVChainArrayWriter, DBSettings, format_state


def _states():
    return [
        State(sample=[1.0, 2.5], energy=3.0, sigma=0.5, beta=1.0,
              accepted=True, swap_type=SwapType.ACCEPT),
        State(sample=[-4.0, 0.25], energy=6.5, sigma=0.1, beta=0.5,
              accepted=False, swap_type=SwapType.REJECT),
    ]


def test_default_settings():
    settings = DBSettings.default()
    assert settings.directory == "chainDB"
    assert settings.cache_size_mb == 100


def test_format_state_pinned():
    state = State(sample=[1.0, 2.0], energy=3.0, sigma=0.5, beta=1.0,
                  accepted=True, swap_type=SwapType.ACCEPT)
    assert format_state(state) == "1,2,3,0.5,1,1,1"


def test_format_state_fields_round_trip():
    state = _states()[1]
    fields = format_state(state).split(",")
    assert len(fields) == len(state.sample) + 5
    assert [float(f) for f in fields[:2]] == list(state.sample)
    assert float(fields[2]) == state.energy
    assert float(fields[3]) == state.sigma
    assert float(fields[4]) == state.beta
    assert int(fields[5]) == int(state.accepted)
    assert int(fields[6]) == state.swap_type.value


def test_writer_creates_one_empty_file_per_chain(tmp_path):
    with CSVChainArrayWriter(tmp_path, 3):
        pass
    assert sorted(p.name for p in tmp_path.iterdir()) == ["0.csv", "1.csv", "2.csv"]
    assert all(p.read_text() == "" for p in tmp_path.iterdir())


def test_writer_appends_rows(tmp_path):
    states = _states()
    with CSVChainArrayWriter(tmp_path, 2) as writer:
        writer.append(1, states[:1])
        writer.append(1, states[1:])
        lines = (tmp_path / "1.csv").read_text().splitlines()
    assert lines == [format_state(s) for s in states]
    assert (tmp_path / "0.csv").read_text() == ""


def test_writer_truncates_existing_files(tmp_path):
    (tmp_path / "0.csv").write_text("old content\n")
    with CSVChainArrayWriter(tmp_path, 1):
        pass
    assert (tmp_path / "0.csv").read_text() == ""


@pytest.mark.parametrize("chain_id", [-1, 2])
def test_writer_rejects_bad_chain_id(tmp_path, chain_id):
    with CSVChainArrayWriter(tmp_path, 2) as writer:
        with pytest.raises(IndexError):
            writer.append(chain_id, _states())


def test_writer_missing_directory_raises(tmp_path):
    with pytest.raises(OSError):
        CSVChainArrayWriter(tmp_path / "missing", 1)


def test_append_after_close_raises(tmp_path):
    writer = CSVChainArrayWriter(tmp_path, 1)
    writer.close()
    with pytest.raises(ValueError):
        writer.append(0, _states())