from scholar.models.user import AccountState, UserAccount
