from oasfilter.validation_error import ValidationError, ValidationErrorSource


def test_message_with_pointer_source():
    err = ValidationError(
        status=422,
        title="Field must be set to array or not be present",
        source=ValidationErrorSource(pointer="/photoUrls"),
    )
    assert str(err) == (
        "[422][][] Field must be set to array or not be present [source pointer=/photoUrls]"
    )


def test_message_with_all_fields():
    err = ValidationError(
        id="abc",
        status=400,
        code="E1",
        title="value is not one of the allowed values",
        detail="value watdis at / must be one of: demo, prod",
        source=ValidationErrorSource(parameter="x-environment"),
    )
    assert str(err) == (
        "[400][E1][abc] value is not one of the allowed values "
        "| value watdis at / must be one of: demo, prod [source parameter=x-environment]"
    )


def test_parameter_takes_priority_over_pointer():
    err = ValidationError(source=ValidationErrorSource(pointer="/0", parameter="status"))
    assert str(err) == "[][][] [source parameter=status]"


def test_empty_error():
    assert str(ValidationError()) == "[][][] "


def test_empty_source():
    assert str(ValidationError(status=404, source=ValidationErrorSource())) == "[404][][] [source ]"


def test_status_code():
    assert ValidationError(status=415).status_code() == 415


def test_equality():
    first = ValidationError(status=404, title="path not found")
    second = ValidationError(status=404, title="path not found")
    assert first == second