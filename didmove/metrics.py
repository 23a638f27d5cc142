from prometheus_client import CollectorRegistry, Counter

registry = CollectorRegistry()
REQUEST_COUNTER = Counter('didmove_requests_total', 'HTTP requests by route', ['route'], registry=registry)
TXN_SUBMITTED = Counter('didmove_transactions_submitted_total', 'Transactions submitted to the fullnode', registry=registry)
TXN_CONFIRMED = Counter('didmove_transactions_confirmed_total', 'Transactions observed as successful', registry=registry)
TXN_TIMEOUTS = Counter('didmove_transaction_timeouts_total', 'Transactions not confirmed within the polling bound', registry=registry)
