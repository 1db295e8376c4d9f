# Overview: Default role -> resource -> actions matrix for the marketplace.
# Each entry is an explicit list; absence of an action means denial.

from .catalog import Role, Resource, Action


# -- CUSTOMER --
# Instance-level rules restrict these to the customer's own rows.

CUSTOMER_PERMISSIONS = {
    Resource.USER: (Action.READ, Action.UPDATE),
    Resource.PRODUCT: (Action.READ,),
    Resource.ORDER: (Action.CREATE, Action.READ),
    Resource.INVOICE: (Action.READ,),
    Resource.DOCUMENT: (Action.CREATE, Action.READ),
    Resource.REPORT: (Action.READ,),
}


# -- VENDOR --
# Instance-level rules restrict these to the vendor's own products and orders.

VENDOR_PERMISSIONS = {
    Resource.USER: (Action.READ, Action.UPDATE),
    Resource.PRODUCT: (Action.CREATE, Action.READ, Action.UPDATE, Action.DELETE),
    Resource.ORDER: (Action.READ, Action.UPDATE, Action.APPROVE, Action.REJECT),
    Resource.INVOICE: (Action.READ,),
    Resource.DOCUMENT: (Action.READ,),
    Resource.VENDOR: (Action.READ, Action.UPDATE),
    Resource.REPORT: (Action.READ,),
}


# -- ADMINISTRATOR --

ADMINISTRATOR_PERMISSIONS = {resource: Action.ALL for resource in Resource.ALL}


DEFAULT_PERMISSIONS = {
    Role.CUSTOMER: CUSTOMER_PERMISSIONS,
    Role.VENDOR: VENDOR_PERMISSIONS,
    Role.ADMINISTRATOR: ADMINISTRATOR_PERMISSIONS,
}
