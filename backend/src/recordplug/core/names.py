"""Logical names of entities and messages used by the bundled plugins.

Platform names are case-preserving; compare them case-insensitively.
"""


class EntityNames:
    account = "account"
    contact = "contact"
    systemuser = "systemuser"
    team = "team"
    new_leaverequests = "new_leaverequests"
    new_leavebalance = "new_leavebalance"


class MessageNames:
    Assign = "Assign"
    Associate = "Associate"
    Create = "Create"
    Delete = "Delete"
    Disassociate = "Disassociate"
    Retrieve = "Retrieve"
    RetrieveMultiple = "RetrieveMultiple"
    SetState = "SetState"
    Update = "Update"
    Upsert = "Upsert"
