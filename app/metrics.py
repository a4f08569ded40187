from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from flask import Response, request
import time
from functools import wraps

# Database Metrics
db_query_duration_seconds = Histogram(
    "smartexam_db_query_duration_seconds", "Database query duration", ["operation"]
)

db_query_total = Counter("smartexam_db_queries_total", "Total database queries", ["operation", "status"])

db_questions_total = Gauge("smartexam_questions_total", "Total number of stored questions")
db_purchased_packs_total = Gauge("smartexam_purchased_packs_total", "Total number of purchase records")
db_unsynced_packs_total = Gauge("smartexam_unsynced_packs_total", "Purchase records not yet fully synced")
db_papers_total = Gauge("smartexam_papers_total", "Total number of assessment papers")

# Sync Metrics
sync_requests_total = Counter(
    "smartexam_sync_requests_total", "Purchased pack sync requests by answering source", ["source"]
)

sync_failures_total = Counter("smartexam_sync_failures_total", "Sync requests that failed", ["reason"])

sync_items_fetched_total = Counter("smartexam_sync_items_fetched_total", "Questions fetched from the remote service")

sync_item_failures_total = Counter(
    "smartexam_sync_item_failures_total", "Questions or manifests that failed to fetch"
)

sync_duration_seconds = Histogram("smartexam_sync_duration_seconds", "Time spent in remote sync", ["operation"])

pack_jobs_total = Counter("smartexam_pack_jobs_total", "Background pack content jobs", ["status"])

# API Metrics
api_request_duration_seconds = Histogram(
    "smartexam_api_request_duration_seconds", "API request duration", ["endpoint", "method"]
)

api_requests_total = Counter(
    "smartexam_api_requests_total", "Total API requests", ["endpoint", "method", "status_code"]
)

ACTIVE_SYNCS = Gauge("smartexam_active_syncs", "Number of remote syncs in progress")


def init_metrics(app):
    @app.route("/metrics")
    def metrics():
        update_db_metrics()
        return Response(generate_latest(), mimetype=CONTENT_TYPE_LATEST)

    @app.before_request
    def before_request():
        request.start_time = time.time()

    @app.after_request
    def after_request(response):
        duration = time.time() - getattr(request, "start_time", time.time())
        api_request_duration_seconds.labels(endpoint=request.endpoint or "unknown", method=request.method).observe(
            duration
        )
        api_requests_total.labels(
            endpoint=request.endpoint or "unknown", method=request.method, status_code=response.status_code
        ).inc()
        return response

    app.logger.info("Prometheus metrics initialized at /metrics")


def update_db_metrics():
    """Update store-related gauges"""
    from models import Question, PurchasedPack, AssessmentPaper

    db_questions_total.set(Question.query.count())
    db_purchased_packs_total.set(PurchasedPack.query.count())
    db_unsynced_packs_total.set(PurchasedPack.query.filter(PurchasedPack.synced == False).count())  # noqa: E712
    db_papers_total.set(AssessmentPaper.query.count())


def track_db_query(operation):
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                result = func(*args, **kwargs)
                db_query_total.labels(operation=operation, status="success").inc()
                return result
            except Exception:
                db_query_total.labels(operation=operation, status="error").inc()
                raise
            finally:
                db_query_duration_seconds.labels(operation=operation).observe(time.time() - start_time)

        return wrapper

    return decorator
