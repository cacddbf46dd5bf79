"""
Enumeration types used across the application.
"""

from enum import Enum


class FieldType(str, Enum):
    """Form element types available in the builder palette"""
    # Basic
    TEXT = "text"
    NUMBER = "number"
    EMAIL = "email"
    PASSWORD = "password"
    PHONE = "phone"
    URL = "url"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    TEXTAREA = "textarea"
    RICHTEXT = "richtext"
    CURRENCY = "currency"
    PERCENTAGE = "percentage"
    # Options
    DROPDOWN = "dropdown"
    COMBOBOX = "combobox"
    MULTISELECT = "multiselect"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    TOGGLE = "toggle"
    RATING = "rating"
    SLIDER = "slider"
    # Layout
    SECTION = "section"
    COLUMN = "column"
    TABS = "tabs"
    ACCORDION = "accordion"
    DIVIDER = "divider"
    SPACER = "spacer"
    # Advanced
    FILE = "file"
    IMAGE = "image"
    SIGNATURE = "signature"
    BARCODE = "barcode"
    DATATABLE = "datatable"
    CHART = "chart"
    GALLERY = "gallery"
    BUTTON = "button"
    HTML = "html"


class FieldCategory(str, Enum):
    """Palette grouping for field types"""
    BASIC = "basic"
    OPTION = "option"
    LAYOUT = "layout"
    ADVANCED = "advanced"


class ContainerSlot(str, Enum):
    """Which child list a container type populates"""
    ELEMENTS = "elements"
    COLUMNS = "columns"
    TABS = "tabs"
    ITEMS = "items"


class ButtonActionType(str, Enum):
    """Closed set of actions a button element may perform"""
    SUBMIT_FORM = "submit-form"
    REQUEST_APPROVAL = "request-approval"
    APPROVE = "approve"
    REJECT = "reject"
    CUSTOM = "custom"


class ApprovalStatus(str, Enum):
    """Approval request lifecycle status"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class DispatchState(str, Enum):
    """Per-click state of a button dispatch handle"""
    IDLE = "idle"
    VALIDATING = "validating"
    CONFIRMING = "confirming"
    EXECUTING = "executing"
    SUCCESS = "success"
    FAILED = "failed"


class VisibilityOperator(str, Enum):
    """Operators supported by element visibility conditions"""
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"


class SortDirection(str, Enum):
    """Sort direction for data table rows"""
    ASC = "asc"
    DESC = "desc"


class ActorRole(str, Enum):
    """Roles supplied by the auth collaborator"""
    ADMIN = "admin"
    USER = "user"
