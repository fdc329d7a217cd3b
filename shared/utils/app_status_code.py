class AppStatusCode:
    # Success
    DATA_RETRIEVED_SUCCESSFULLY = "100"
    OPERATION_SUCCESSFUL = "101"
    CREATED_SUCCESSFULLY = "102"

    # Client errors
    INVALID_INPUT = "200"
    REQUIRED_VALIDATION_ERROR = "201"
    RECORD_NOT_FOUND = "202"

    # Server errors
    OPERATION_FAILED = "300"
