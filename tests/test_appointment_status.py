import pytest

from internet_hospital.models.appointment import AppointmentStatus, InvalidStatusTransition

def test_reserve_open_appointment():
    assert AppointmentStatus.OPEN.reserve() == AppointmentStatus.RESERVED

def test_release_reserved_appointment():
    assert AppointmentStatus.RESERVED.release() == AppointmentStatus.OPEN

def test_cancel_reserved_appointment():
    assert AppointmentStatus.RESERVED.cancel() == AppointmentStatus.CANCELED

@pytest.mark.parametrize(
    ("current", "transition"),
    [
        (AppointmentStatus.OPEN, "release"),
        (AppointmentStatus.OPEN, "cancel"),
        (AppointmentStatus.RESERVED, "reserve"),
        (AppointmentStatus.CANCELED, "reserve"),
        (AppointmentStatus.CANCELED, "release"),
        (AppointmentStatus.CANCELED, "cancel"),
    ],
)
def test_undefined_transitions_raise(current, transition):
    with pytest.raises(InvalidStatusTransition):
        getattr(current, transition)()

def test_canceled_is_terminal():
    assert not any(AppointmentStatus.CANCELED.can_become(target) for target in AppointmentStatus)

def test_only_open_appointments_are_deletable():
    assert AppointmentStatus.OPEN.is_deletable
    assert not AppointmentStatus.RESERVED.is_deletable
    assert not AppointmentStatus.CANCELED.is_deletable

def test_status_values():
    assert [status.value for status in AppointmentStatus] == ["open", "reserved", "canceled"]
