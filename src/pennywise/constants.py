from pennywise.models import Bank, Category, TransactionType

INITIAL_BANKS: tuple[Bank, ...] = (
    Bank(id="wio", name="Wio Bank", currency="AED", icon="WB"),
    Bank(id="revolut", name="Revolut", currency="GBP", icon="RV"),
)

INITIAL_CATEGORIES: tuple[Category, ...] = (
    Category(
        id="apt",
        name="Apartment",
        subcategories=["Rent", "AC Bill", "Wi-Fi", "Gas Bill", "Utilities"],
        type=TransactionType.EXPENSE,
        color="#ef4444",
    ),
    Category(
        id="food",
        name="Food",
        subcategories=["Meals Out", "Food Delivery", "Snacks"],
        type=TransactionType.EXPENSE,
        color="#f97316",
    ),
    Category(
        id="groceries",
        name="Groceries",
        subcategories=["In-Store Shopping", "Ordering In/Delivery", "Household Supplies"],
        type=TransactionType.EXPENSE,
        color="#eab308",
    ),
    Category(
        id="personal",
        name="Personal",
        subcategories=["Health", "Clothes", "Amazon", "Phone Plan", "Gym"],
        type=TransactionType.EXPENSE,
        color="#8b5cf6",
    ),
    Category(
        id="car",
        name="Car",
        subcategories=["Fuel", "Insurance", "Parts", "Maintenance", "Parking"],
        type=TransactionType.EXPENSE,
        color="#06b6d4",
    ),
    Category(
        id="travel",
        name="Travel",
        subcategories=["Uber/Rideshare", "Flights", "Hotels", "Public Transit"],
        type=TransactionType.EXPENSE,
        color="#ec4899",
    ),
    Category(
        id="income_salary",
        name="Salary",
        subcategories=["Main Job", "Bonus"],
        type=TransactionType.INCOME,
        color="#10b981",
    ),
    Category(
        id="income_other",
        name="Other Income",
        subcategories=["Freelance", "Gifts", "Investments"],
        type=TransactionType.INCOME,
        color="#34d399",
    ),
    Category(
        id="excluded",
        name="Excluded",
        subcategories=["Transfer", "Credit Card Payment", "Reimbursement", "Refund", "Duplicate"],
        type=TransactionType.EXPENSE,
        color="#64748b",
    ),
)


def find_bank(bank_id: str | None, banks: list[Bank] | tuple[Bank, ...] = INITIAL_BANKS) -> Bank:
    for bank in banks:
        if bank.id == bank_id:
            return bank
    if banks:
        return banks[0]
    return Bank(id="unknown", name="Unknown", currency="GBP", icon="?")
