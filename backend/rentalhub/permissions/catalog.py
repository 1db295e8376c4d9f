# Overview: Role, resource and action constants used by the permission matrix.


class Role:
    """User roles. Flat set: no role inherits from another."""
    CUSTOMER = "Customer"
    VENDOR = "Vendor"
    ADMINISTRATOR = "Administrator"

    ALL = (CUSTOMER, VENDOR, ADMINISTRATOR)


class Resource:
    """Classes of protected entities."""
    USER = "user"
    PRODUCT = "product"
    ORDER = "order"
    INVOICE = "invoice"
    DOCUMENT = "document"
    VENDOR = "vendor"
    CATEGORY = "category"
    REPORT = "report"
    PLATFORM_CONFIG = "platform_config"
    AUDIT_LOG = "audit_log"

    ALL = (
        USER, PRODUCT, ORDER, INVOICE, DOCUMENT,
        VENDOR, CATEGORY, REPORT, PLATFORM_CONFIG, AUDIT_LOG,
    )


class Action:
    """
    Operation types.

    MANAGE is listed explicitly wherever it is granted. It does not imply
    any other action: each required action must be granted on its own.
    """
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    APPROVE = "approve"
    REJECT = "reject"
    REFUND = "refund"
    MANAGE = "manage"

    ALL = (CREATE, READ, UPDATE, DELETE, APPROVE, REJECT, REFUND, MANAGE)
