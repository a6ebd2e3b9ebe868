class RiskManagementError(Exception):
    pass


class PortfolioNotFoundError(RiskManagementError):
    pass


class RiskValidationError(RiskManagementError):
    pass


class OverrideReasonRequiredError(RiskManagementError):
    pass
