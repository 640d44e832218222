# utils/plan_limits.py
FREE_DAILY_SCANS = 5      # scans per UTC day without a subscription

# Amounts in kobo, as Paystack reports them
PLAN_PRICES = {
    "basic": {
        "monthly": 29900,
        "yearly": 322800,     # 10% off twelve months
    },
    "premium": {
        "monthly": 49900,
        "yearly": 527600,     # 12% off twelve months
    },
}
