from grpc_runtime.call_options import WAIT_FOR_READY_FLAG, CallOptions


def test_from_mapping_ignores_unknown_keys():
    options = CallOptions.from_mapping({'timeout': 2, 'flags': 1, 'propagate': 'x'})
    assert options == CallOptions(timeout=2, flags=1)
    assert CallOptions.from_mapping(None) == CallOptions()
    assert CallOptions.from_mapping(options) is options


def test_merged_prefers_set_fields_of_the_override():
    base = CallOptions(timeout=2, flags=WAIT_FOR_READY_FLAG)
    merged = base.merged(CallOptions(timeout=1, host='h'))
    assert merged == CallOptions(timeout=1, flags=WAIT_FOR_READY_FLAG, host='h')


def test_deadline_is_derived_from_timeout():
    assert CallOptions(timeout=1.5).with_deadline(100.0).deadline == 101.5
    no_timeout = CallOptions(deadline=50.0)
    assert no_timeout.with_deadline(100.0) is no_timeout
    flag_timeout = CallOptions(timeout=True)
    assert flag_timeout.with_deadline(100.0).deadline is None


def test_remaining_time():
    options = CallOptions(deadline=105.0)
    assert options.remaining(100.0) == 5.0
    assert options.remaining(110.0) == 0.0
    assert CallOptions().remaining(100.0) is None


def test_wait_for_ready():
    assert CallOptions().wait_for_ready is None
    assert CallOptions(flags=WAIT_FOR_READY_FLAG).wait_for_ready is True
    assert CallOptions(flags=0).wait_for_ready is False
