"""
Business Analysis Service

Answers canned business questions for the dashboard assistant. The query is
lower-cased and matched by substring against an ordered intent table; the
first intent that matches fills its template with aggregates computed over
the user's product, sale and alert rows.

Everything here works on plain dict rows, so it can be fed straight from the
database loader or from a test fixture.
"""
from collections import defaultdict
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from shopwise.config import get_settings
from shopwise.utils.helpers import safe_divide, to_number, format_currency, parse_datetime
from shopwise.utils.logger import log

settings = get_settings()

# Share of the selling price assumed as cost when a product has no cost price
DEFAULT_COST_RATIO = 0.6
# Net profit = gross profit less assumed operating expenses
OPERATING_EXPENSE_RATIO = 0.2

TREND_WINDOW = 5
HIGH_DEMAND_MIN_UNITS = 5
HIGH_MARGIN_MIN_PCT = 30.0
HIGH_VALUE_SPEND = 1000
MEDIUM_VALUE_SPEND = 500
PEAK_SEASON_RATIO = 1.2
OFF_SEASON_RATIO = 0.8
SEASONAL_RECENT_MONTHS = 3

# Opportunity / risk thresholds
OPPORTUNITY_REVENUE_CEILING = 50000
RISK_REVENUE_FLOOR = 10000
RETENTION_OPPORTUNITY_PCT = 60
RETENTION_RISK_PCT = 50
SCALE_UP_MIN_UNITS = 10
DIVERSIFY_MAX_PRODUCTS = 20


class AnalysisError(RuntimeError):
    """Raised when the business data could not be analysed."""


@dataclass
class BusinessData:
    """Rows the analysis runs over. `available` is False when loading failed."""
    products: List[Dict[str, Any]] = field(default_factory=list)
    sales: List[Dict[str, Any]] = field(default_factory=list)
    alerts: List[Dict[str, Any]] = field(default_factory=list)
    available: bool = True

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "BusinessData":
        data = data or {}
        return cls(
            products=list(data.get("products") or []),
            sales=list(data.get("sales") or []),
            alerts=list(data.get("alerts") or []),
        )


@dataclass
class AnalysisRequest:
    query: str
    data: BusinessData
    context: Optional[str] = None


@dataclass
class AnalysisResponse:
    analysis: str
    insights: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    metrics: Dict[str, Any] = field(default_factory=dict)
    intent: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ────────────────────────────────────────────
# ROW AGGREGATION
# ────────────────────────────────────────────


def _units(value: Any) -> int:
    return int(to_number(value))


def _product_index(products: Sequence[Dict]) -> Dict[Any, Dict]:
    """product_id -> first product row carrying it."""
    index: Dict[Any, Dict] = {}
    for p in products:
        pid = p.get("product_id")
        if pid is not None and pid not in index:
            index[pid] = p
    return index


def _sum_amounts(sales: Sequence[Dict]) -> float:
    return sum(to_number(s.get("total_amount")) for s in sales)


def _sale_date(sale: Dict) -> Optional[datetime]:
    return parse_datetime(sale.get("sale_date") or sale.get("created_at"))


def _unit_cost(product: Dict) -> float:
    """Cost price, or the assumed share of the selling price when unknown/zero."""
    cost = to_number(product.get("cost_price"))
    return cost or to_number(product.get("unit_price")) * DEFAULT_COST_RATIO


def _product_margin(product: Dict) -> float:
    price = to_number(product.get("unit_price"))
    if price <= 0:
        return 0.0
    return (price - _unit_cost(product)) / price * 100


def get_total_revenue(data: BusinessData) -> float:
    return _sum_amounts(data.sales)


def get_top_products(data: BusinessData) -> List[Dict[str, Any]]:
    """Units sold per product, best seller first."""
    lookup = _product_index(data.products)
    totals: Dict[Any, Dict[str, Any]] = {}
    for s in data.sales:
        pid = s.get("product_id")
        if pid not in totals:
            prod = lookup.get(pid)
            name = (prod.get("name") if prod else None) or pid
            totals[pid] = {"product_id": pid, "name": name, "sales": 0}
        totals[pid]["sales"] += _units(s.get("quantity_sold"))
    return sorted(totals.values(), key=lambda p: p["sales"], reverse=True)


def get_high_demand_products(data: BusinessData) -> List[Dict[str, Any]]:
    return [p for p in get_top_products(data) if p["sales"] > HIGH_DEMAND_MIN_UNITS]


def get_category_distribution(data: BusinessData) -> Dict[str, int]:
    categories: Dict[str, int] = {}
    for p in data.products:
        category = p.get("category")
        if category:
            categories[category] = categories.get(category, 0) + 1
    return categories


def get_best_selling_categories(data: BusinessData) -> List[Dict[str, Any]]:
    """Sale revenue per product category, highest first."""
    lookup = _product_index(data.products)
    revenue: Dict[str, float] = {}
    for s in data.sales:
        prod = lookup.get(s.get("product_id"))
        category = prod.get("category") if prod else None
        if category:
            revenue[category] = revenue.get(category, 0.0) + to_number(s.get("total_amount"))
    ranked = [{"category": c, "revenue": r} for c, r in revenue.items()]
    return sorted(ranked, key=lambda c: c["revenue"], reverse=True)


def _trend_windows(sales: Sequence[Dict]) -> Tuple[float, float, int]:
    """Totals of the last window and the window before it, plus the older window size."""
    recent = sales[-TREND_WINDOW:]
    older = sales[-2 * TREND_WINDOW:-TREND_WINDOW]
    return _sum_amounts(recent), _sum_amounts(older), len(older)


def analyze_sales_trend(data: BusinessData) -> str:
    if not data.sales:
        return "No sales data available"
    recent_total, older_total, older_count = _trend_windows(data.sales)
    if older_count == 0:
        return "Insufficient data for trend analysis"
    if recent_total > older_total:
        return "📈 Increasing"
    if recent_total < older_total:
        return "📉 Decreasing"
    return "➡️ Stable"


def calculate_revenue_growth(data: BusinessData) -> float:
    """Percent change of the last window of sales over the window before it."""
    if len(data.sales) < 2:
        return 0.0
    recent_total, older_total, older_count = _trend_windows(data.sales)
    if older_count == 0:
        return 0.0
    if older_total == 0:
        return 100.0 if recent_total > 0 else 0.0
    return (recent_total - older_total) / older_total * 100


def get_monthly_revenue(data: BusinessData) -> List[Dict[str, Any]]:
    monthly: Dict[str, float] = defaultdict(float)
    for s in data.sales:
        when = _sale_date(s)
        if when is None:
            continue
        monthly[f"{when.year}-{when.month:02d}"] += to_number(s.get("total_amount"))
    return [{"month": m, "revenue": monthly[m]} for m in sorted(monthly)]


def analyze_seasonal_trends(data: BusinessData) -> str:
    if not data.sales:
        return "No sales data available for seasonal analysis"
    monthly = get_monthly_revenue(data)
    if len(monthly) < SEASONAL_RECENT_MONTHS:
        return "Insufficient data for seasonal analysis"

    recent = monthly[-SEASONAL_RECENT_MONTHS:]
    avg_recent = sum(m["revenue"] for m in recent) / len(recent)
    avg_overall = sum(m["revenue"] for m in monthly) / len(monthly)

    if avg_recent > avg_overall * PEAK_SEASON_RATIO:
        return "📈 Peak season detected - sales are above average"
    if avg_recent < avg_overall * OFF_SEASON_RATIO:
        return "📉 Off-season detected - sales are below average"
    return "➡️ Stable seasonal pattern - no significant peaks or valleys"


def _customers(data: BusinessData) -> List[Dict[str, Any]]:
    customers: Dict[str, Dict[str, Any]] = {}
    for s in data.sales:
        key = s.get("customer_id") or s.get("customer_name") or "Unknown"
        when = _sale_date(s)
        entry = customers.get(key)
        if entry is None:
            entry = customers[key] = {
                "id": key,
                "name": s.get("customer_name"),
                "orders": 0,
                "total_spent": 0.0,
                "last_order": when,
            }
        entry["orders"] += 1
        entry["total_spent"] += to_number(s.get("total_amount"))
        if when is not None and (entry["last_order"] is None or when > entry["last_order"]):
            entry["last_order"] = when
    return list(customers.values())


def analyze_customer_behavior(data: BusinessData) -> Dict[str, Any]:
    customers = _customers(data)
    total_customers = len(customers)
    repeat_customers = sum(1 for c in customers if c["orders"] > 1)
    ranked = sorted(customers, key=lambda c: c["total_spent"], reverse=True)

    top_customers = []
    for c in ranked[:5]:
        top_customers.append({
            **c,
            "last_order": c["last_order"].isoformat() if c["last_order"] else None,
        })

    return {
        "total_customers": total_customers,
        "repeat_customers": repeat_customers,
        "retention_rate": safe_divide(repeat_customers, total_customers) * 100,
        "avg_customer_value": safe_divide(sum(c["total_spent"] for c in customers), total_customers),
        "top_customers": top_customers,
    }


def get_customer_segments(data: BusinessData) -> List[Dict[str, Any]]:
    """Split every customer into value bands by lifetime spend."""
    customers = _customers(data)
    spends = [c["total_spent"] for c in customers]
    segments = [
        {"type": "High Value", "count": sum(1 for v in spends if v > HIGH_VALUE_SPEND)},
        {"type": "Medium Value", "count": sum(1 for v in spends if MEDIUM_VALUE_SPEND < v <= HIGH_VALUE_SPEND)},
        {"type": "Low Value", "count": sum(1 for v in spends if v <= MEDIUM_VALUE_SPEND)},
    ]
    for segment in segments:
        segment["percentage"] = safe_divide(segment["count"], len(customers)) * 100
    return segments


def analyze_profitability(data: BusinessData) -> Dict[str, float]:
    lookup = _product_index(data.products)
    total_revenue = _sum_amounts(data.sales)
    total_cost = 0.0
    for s in data.sales:
        prod = lookup.get(s.get("product_id"))
        if prod is None:
            continue  # unknown product: no cost basis
        total_cost += _unit_cost(prod) * _units(s.get("quantity_sold"))

    gross_profit = total_revenue - total_cost
    avg_product_margin = safe_divide(
        sum(_product_margin(p) for p in data.products), len(data.products)
    )
    return {
        "gross_margin": safe_divide(gross_profit, total_revenue) * 100,
        "net_profit": gross_profit * (1 - OPERATING_EXPENSE_RATIO),
        "avg_product_margin": avg_product_margin,
        "cogs": total_cost,
    }


def get_high_margin_products(data: BusinessData) -> List[Dict[str, Any]]:
    ranked = [{"name": p.get("name"), "margin": _product_margin(p)} for p in data.products]
    ranked = [p for p in ranked if p["margin"] > HIGH_MARGIN_MIN_PCT]
    return sorted(ranked, key=lambda p: p["margin"], reverse=True)


def get_pricing_insights(data: BusinessData) -> str:
    if not data.products:
        return "No product data available for pricing analysis"
    prices = [to_number(p.get("unit_price")) for p in data.products]
    sym = settings.currency_symbol
    avg_price = sum(prices) / len(prices)
    return (
        f"Average Price: {sym}{avg_price:.2f}\n"
        f"Price Range: {sym}{min(prices):.2f} - {sym}{max(prices):.2f}"
    )


def _low_stock(data: BusinessData) -> List[Dict]:
    return [p for p in data.products if to_number(p.get("current_stock")) < settings.low_stock_threshold]


def _out_of_stock(data: BusinessData) -> List[Dict]:
    return [p for p in data.products if to_number(p.get("current_stock")) == 0]


def calculate_inventory_value(data: BusinessData) -> float:
    return sum(
        to_number(p.get("current_stock")) * to_number(p.get("unit_price"))
        for p in data.products
    )


def get_business_recommendations(data: BusinessData) -> Dict[str, List[str]]:
    total_revenue = _sum_amounts(data.sales)
    low_stock = _low_stock(data)
    out_of_stock = _out_of_stock(data)
    retention = analyze_customer_behavior(data)["retention_rate"]

    immediate = [
        f"Restock {len(out_of_stock)} out-of-stock products immediately" if out_of_stock
        else "Inventory levels are adequate",
        f"Monitor {len(low_stock)} low-stock products" if low_stock
        else "All products have sufficient stock",
        "Review and update pricing strategies",
        "Analyze customer feedback and satisfaction",
    ]
    strategic = [
        "Develop a customer loyalty program",
        "Implement automated inventory management",
        "Create targeted marketing campaigns",
        "Expand product categories based on demand",
        "Optimize pricing for better margins",
    ]
    risks = [
        "Risk of losing sales due to stockouts" if out_of_stock else "Low stockout risk",
        "Customer retention needs improvement" if retention < RETENTION_RISK_PCT
        else "Good customer retention",
        "Revenue growth opportunities available" if total_revenue < RISK_REVENUE_FLOOR
        else "Strong revenue performance",
    ]
    return {"immediate": immediate, "strategic": strategic, "risks": risks}


def identify_opportunities(data: BusinessData) -> List[str]:
    opportunities = []
    top_products = get_top_products(data)

    if _sum_amounts(data.sales) < OPPORTUNITY_REVENUE_CEILING:
        opportunities.append("Expand marketing efforts to increase sales volume")
    if analyze_customer_behavior(data)["retention_rate"] < RETENTION_OPPORTUNITY_PCT:
        opportunities.append("Implement customer retention strategies")
    if top_products and top_products[0]["sales"] > SCALE_UP_MIN_UNITS:
        opportunities.append("Scale up production of top-selling products")
    if len(data.products) < DIVERSIFY_MAX_PRODUCTS:
        opportunities.append("Diversify product portfolio")

    return opportunities or ["Focus on operational efficiency improvements"]


def compute_metrics(data: BusinessData) -> Dict[str, Any]:
    """Every figure a response template may need, computed once per question."""
    total_revenue = get_total_revenue(data)
    total_sales = len(data.sales)
    return {
        "total_revenue": total_revenue,
        "total_products": len(data.products),
        "total_sales": total_sales,
        "active_alerts": sum(1 for a in data.alerts if not a.get("is_resolved")),
        "avg_order_value": safe_divide(total_revenue, total_sales),
        "top_products": get_top_products(data),
        "best_selling_categories": get_best_selling_categories(data),
        "customers": analyze_customer_behavior(data),
        "customer_segments": get_customer_segments(data),
        "sales_trend": analyze_sales_trend(data),
        "revenue_growth": calculate_revenue_growth(data),
        "high_demand_products": get_high_demand_products(data),
        "seasonal_trends": analyze_seasonal_trends(data),
        "low_stock_products": _low_stock(data),
        "out_of_stock_products": _out_of_stock(data),
        "categories": get_category_distribution(data),
        "inventory_value": calculate_inventory_value(data),
        "profitability": analyze_profitability(data),
        "high_margin_products": get_high_margin_products(data),
        "pricing_insights": get_pricing_insights(data),
        "recommendations": get_business_recommendations(data),
        "opportunities": identify_opportunities(data),
    }


# ────────────────────────────────────────────
# RESPONSE TEMPLATES
# ────────────────────────────────────────────


def _money(amount: float) -> str:
    return format_currency(amount, settings.currency_symbol)


def _signed(value: float) -> str:
    return f"{'+' if value > 0 else ''}{value:.1f}"


def _top_products(m: Dict) -> AnalysisResponse:
    top = m["top_products"][:5]
    lines = "\n".join(f"{i + 1}. {p['name']} - {p['sales']} units" for i, p in enumerate(top))
    return AnalysisResponse(
        analysis=f"🏆 **Top-Selling Products:**\n{lines}",
        insights=[f"Top Product: {top[0]['name'] if top else 'N/A'}"],
        recommendations=[
            "Promote your best sellers for higher revenue",
            "Consider bundling top products",
        ],
        metrics={"top_products": top},
    )


def _average_order_value(m: Dict) -> AnalysisResponse:
    aov = f"{settings.currency_symbol}{m['avg_order_value']:.2f}"
    return AnalysisResponse(
        analysis=f"💸 **Average Order Value:**\nYour average order value is {aov}.",
        insights=[f"Average Order Value: {aov}"],
        recommendations=[
            "Upsell or cross-sell to increase order value",
            "Offer free shipping above a threshold",
        ],
        metrics={"avg_order_value": m["avg_order_value"]},
    )


def _revenue_trend(m: Dict) -> AnalysisResponse:
    growth = m["revenue_growth"]
    return AnalysisResponse(
        analysis=f"📈 **Revenue Trend:**\n{m['sales_trend']}\nGrowth: {_signed(growth)}%",
        insights=[f"Trend: {m['sales_trend']}", f"Growth: {growth:.1f}%"],
        recommendations=[
            "Maintain current growth strategies" if growth > 0 else "Review pricing and marketing",
        ],
        metrics={"sales_trend": m["sales_trend"], "revenue_growth": growth},
    )


def _best_categories(m: Dict) -> AnalysisResponse:
    top = m["best_selling_categories"][:3]
    lines = [f"{c['category']}: {_money(c['revenue'])}" for c in top]
    return AnalysisResponse(
        analysis="🏷️ **Best Selling Categories:**\n" + "\n".join(f"• {line}" for line in lines),
        insights=lines,
        recommendations=["Expand popular categories", "Promote best-selling categories"],
        metrics={"best_selling_categories": top},
    )


def _sales_performance(m: Dict) -> AnalysisResponse:
    return AnalysisResponse(
        analysis=(
            f"📊 **Sales Performance:**\nTotal Revenue: {_money(m['total_revenue'])}\n"
            f"Total Orders: {m['total_sales']}\nTrend: {m['sales_trend']}"
        ),
        insights=[
            f"Revenue: {_money(m['total_revenue'])}",
            f"Orders: {m['total_sales']}",
            f"Trend: {m['sales_trend']}",
        ],
        recommendations=["Focus on top-performing products", "Analyze peak sales periods"],
        metrics={
            "total_revenue": m["total_revenue"],
            "total_sales": m["total_sales"],
            "sales_trend": m["sales_trend"],
        },
    )


def _low_stock_products(m: Dict) -> AnalysisResponse:
    low = m["low_stock_products"]
    listing = (
        ", ".join(f"{p.get('name')} ({_units(p.get('current_stock'))})" for p in low[:5])
        if low else "No products need restocking."
    )
    return AnalysisResponse(
        analysis=f"⚠️ **Low Stock Products:**\n{listing}",
        insights=[f"Low Stock: {len(low)}"],
        recommendations=["Restock low inventory items", "Set up automated reorder points"],
        metrics={"low_stock_products": low[:5]},
    )


def _out_of_stock_products(m: Dict) -> AnalysisResponse:
    out = m["out_of_stock_products"]
    listing = ", ".join(str(p.get("name")) for p in out[:5]) if out else "No products are out of stock."
    return AnalysisResponse(
        analysis=f"🚨 **Out of Stock Products:**\n{listing}",
        insights=[f"Out of Stock: {len(out)}"],
        recommendations=["Urgently restock out-of-stock items"],
        metrics={"out_of_stock_products": out[:5]},
    )


def _inventory_value(m: Dict) -> AnalysisResponse:
    value = _money(m["inventory_value"])
    return AnalysisResponse(
        analysis=f"💰 **Total Inventory Value:**\n{value}",
        insights=[f"Inventory Value: {value}"],
        recommendations=["Monitor inventory value for cash flow management"],
        metrics={"inventory_value": m["inventory_value"]},
    )


def _category_distribution(m: Dict) -> AnalysisResponse:
    lines = [f"{cat}: {count} products" for cat, count in m["categories"].items()]
    return AnalysisResponse(
        analysis="📦 **Category Distribution:**\n" + "\n".join(f"• {line}" for line in lines),
        insights=lines,
        recommendations=["Expand popular categories", "Analyze slow-moving categories"],
        metrics={"categories": m["categories"]},
    )


def _inventory_overview(m: Dict) -> AnalysisResponse:
    low, out = len(m["low_stock_products"]), len(m["out_of_stock_products"])
    return AnalysisResponse(
        analysis=(
            f"📦 **Inventory Overview:**\nTotal Products: {m['total_products']}\n"
            f"Low Stock: {low}\nOut of Stock: {out}"
        ),
        insights=[f"Products: {m['total_products']}", f"Low Stock: {low}", f"Out of Stock: {out}"],
        recommendations=["Restock low and out-of-stock items", "Monitor inventory regularly"],
        metrics={"total_products": m["total_products"], "low_stock": low, "out_of_stock": out},
    )


def _customer_retention(m: Dict) -> AnalysisResponse:
    rate = m["customers"]["retention_rate"]
    return AnalysisResponse(
        analysis=f"🔄 **Customer Retention Rate:**\n{rate:.1f}%",
        insights=[f"Retention Rate: {rate:.1f}%"],
        recommendations=["Implement loyalty programs", "Engage repeat customers"],
        metrics={"retention_rate": rate},
    )


def _top_customers(m: Dict) -> AnalysisResponse:
    top = m["customers"]["top_customers"][:3]
    lines = [f"{c['name'] or 'Customer ' + str(c['id'])}: {_money(c['total_spent'])}" for c in top]
    return AnalysisResponse(
        analysis="👑 **Top Customers:**\n" + "\n".join(f"{i + 1}. {line}" for i, line in enumerate(lines)),
        insights=lines,
        recommendations=["Reward top customers", "Personalize offers for high-value clients"],
        metrics={"top_customers": top},
    )


def _customer_segments(m: Dict) -> AnalysisResponse:
    segments = m["customer_segments"]
    return AnalysisResponse(
        analysis="📊 **Customer Segments:**\n" + "\n".join(
            f"• {s['type']}: {s['count']} customers ({s['percentage']:.1f}%)" for s in segments
        ),
        insights=[f"{s['type']}: {s['count']} ({s['percentage']:.1f}%)" for s in segments],
        recommendations=["Target marketing by segment", "Develop offers for high-value segments"],
        metrics={"customer_segments": segments},
    )


def _customer_behavior(m: Dict) -> AnalysisResponse:
    c = m["customers"]
    return AnalysisResponse(
        analysis=(
            f"👥 **Customer Behavior:**\nTotal Customers: {c['total_customers']}\n"
            f"Repeat Customers: {c['repeat_customers']}"
        ),
        insights=[
            f"Total Customers: {c['total_customers']}",
            f"Repeat Customers: {c['repeat_customers']}",
        ],
        recommendations=["Analyze repeat purchase patterns", "Engage new customers for retention"],
        metrics={"total_customers": c["total_customers"], "repeat_customers": c["repeat_customers"]},
    )


def _customer_loyalty(m: Dict) -> AnalysisResponse:
    c = m["customers"]
    return AnalysisResponse(
        analysis=(
            f"💎 **Customer Loyalty:**\nRepeat Customers: {c['repeat_customers']}\n"
            f"Retention Rate: {c['retention_rate']:.1f}%"
        ),
        insights=[
            f"Repeat Customers: {c['repeat_customers']}",
            f"Retention Rate: {c['retention_rate']:.1f}%",
        ],
        recommendations=["Launch loyalty programs", "Reward frequent buyers"],
        metrics={"repeat_customers": c["repeat_customers"], "retention_rate": c["retention_rate"]},
    )


def _seasonal_pattern(m: Dict) -> AnalysisResponse:
    return AnalysisResponse(
        analysis=f"📅 **Seasonal Pattern:**\n{m['seasonal_trends']}",
        insights=[f"Seasonal Pattern: {m['seasonal_trends']}"],
        recommendations=[
            "Plan inventory for peak/off seasons",
            "Adjust marketing for seasonal trends",
        ],
        metrics={"seasonal_trends": m["seasonal_trends"]},
    )


def _growth_opportunities(m: Dict) -> AnalysisResponse:
    return AnalysisResponse(
        analysis="🚀 **Growth Opportunities:**\n" + "\n".join(m["opportunities"]),
        insights=list(m["opportunities"]),
        recommendations=["Focus on identified opportunities", "Invest in growth areas"],
        metrics={"opportunities": m["opportunities"]},
    )


def _business_performance(m: Dict) -> AnalysisResponse:
    return AnalysisResponse(
        analysis=(
            f"📈 **Business Performance:**\nRevenue: {_money(m['total_revenue'])}\n"
            f"Orders: {m['total_sales']}\nTrend: {m['sales_trend']}"
        ),
        insights=[
            f"Revenue: {_money(m['total_revenue'])}",
            f"Orders: {m['total_sales']}",
            f"Trend: {m['sales_trend']}",
        ],
        recommendations=["Review performance regularly", "Optimize for growth"],
        metrics={
            "total_revenue": m["total_revenue"],
            "total_sales": m["total_sales"],
            "sales_trend": m["sales_trend"],
        },
    )


def _growth_trend(m: Dict) -> AnalysisResponse:
    growth = m["revenue_growth"]
    return AnalysisResponse(
        analysis=f"📈 **Growth Trend:**\n{m['sales_trend']}\nGrowth: {growth:.1f}%",
        insights=[f"Trend: {m['sales_trend']}", f"Growth: {growth:.1f}%"],
        recommendations=["Capitalize on positive trends", "Address negative trends quickly"],
        metrics={"sales_trend": m["sales_trend"], "revenue_growth": growth},
    )


def _performance_analysis(m: Dict) -> AnalysisResponse:
    high_demand = m["high_demand_products"]
    names = ", ".join(str(p["name"]) for p in high_demand[:3])
    return AnalysisResponse(
        analysis=f"📊 **Performance Analysis:**\nTrend: {m['sales_trend']}\nHigh Demand Products: {names}",
        insights=[f"Trend: {m['sales_trend']}", f"High Demand: {len(high_demand)}"],
        recommendations=["Focus on high-demand products", "Monitor performance regularly"],
        metrics={"sales_trend": m["sales_trend"], "high_demand_products": high_demand[:3]},
    )


def _profit_summary(title: str, m: Dict) -> AnalysisResponse:
    p = m["profitability"]
    margin = f"Gross Margin: {p['gross_margin']:.1f}%"
    net = f"Net Profit: {_money(p['net_profit'])}"
    return AnalysisResponse(
        analysis=f"💰 **{title}:**\n{margin}\n{net}",
        insights=[margin, net],
        recommendations=["Review pricing and costs", "Focus on high-margin products"],
        metrics={"gross_margin": p["gross_margin"], "net_profit": p["net_profit"]},
    )


def _profit_margin(m: Dict) -> AnalysisResponse:
    return _profit_summary("Profit Margin", m)


def _profitability(m: Dict) -> AnalysisResponse:
    return _profit_summary("Profitability Overview", m)


def _most_profitable(m: Dict) -> AnalysisResponse:
    top = m["high_margin_products"][:3]
    return AnalysisResponse(
        analysis="💎 **Most Profitable Products:**\n" + "\n".join(
            f"{p['name']}: {p['margin']:.1f}% margin" for p in top
        ),
        insights=[f"{p['name']}: {p['margin']:.1f}%" for p in top],
        recommendations=["Promote high-margin products", "Negotiate supplier costs"],
        metrics={"high_margin_products": top},
    )


def _cost_structure(m: Dict) -> AnalysisResponse:
    cogs = m["profitability"]["cogs"]
    return AnalysisResponse(
        analysis=f"💸 **Cost Structure:**\nCOGS: {_money(cogs)}",
        insights=[f"COGS: {_money(cogs)}"],
        recommendations=["Reduce costs where possible", "Negotiate with suppliers"],
        metrics={"cogs": cogs},
    )


def _pricing_insights(m: Dict) -> AnalysisResponse:
    return AnalysisResponse(
        analysis=f"🏷️ **Pricing Insights:**\n{m['pricing_insights']}",
        insights=[m["pricing_insights"]],
        recommendations=["Optimize pricing for better margins", "Monitor competitor pricing"],
        metrics={"pricing_insights": m["pricing_insights"]},
    )


def _business_recommendations(m: Dict) -> AnalysisResponse:
    recs, opportunities = m["recommendations"], m["opportunities"]
    return AnalysisResponse(
        analysis=(
            "💡 **Business Recommendations:**\n"
            f"Immediate: {'; '.join(recs['immediate'])}\n"
            f"Strategic: {'; '.join(recs['strategic'])}\n"
            f"Risks: {'; '.join(recs['risks'])}\n"
            f"Opportunities: {'; '.join(opportunities)}"
        ),
        insights=[*recs["immediate"], *recs["strategic"], *opportunities],
        recommendations=[*recs["immediate"], *recs["strategic"]],
        metrics={"recommendations": recs, "opportunities": opportunities},
    )


def _business_overview(m: Dict) -> AnalysisResponse:
    return AnalysisResponse(
        analysis=(
            f"👋 **Business Overview:**\nRevenue: {_money(m['total_revenue'])}\n"
            f"Orders: {m['total_sales']}\nProducts: {m['total_products']}\n"
            f"Active Alerts: {m['active_alerts']}\n\n"
            "Ask me about sales, inventory, customers, profitability, trends or recommendations."
        ),
        insights=[
            f"Revenue: {_money(m['total_revenue'])}",
            f"Orders: {m['total_sales']}",
            f"Products: {m['total_products']}",
            f"Active Alerts: {m['active_alerts']}",
        ],
        recommendations=["Ask about a specific area for a deeper analysis"],
        metrics={
            "total_revenue": m["total_revenue"],
            "total_sales": m["total_sales"],
            "total_products": m["total_products"],
            "active_alerts": m["active_alerts"],
        },
    )


Template = Callable[[Dict], AnalysisResponse]

# Order matters: the first intent with a keyword inside the query wins
INTENTS: List[Tuple[str, Tuple[str, ...], Template]] = [
    # Sales
    ("top_products", ("top-selling product",), _top_products),
    ("average_order_value", ("average order value",), _average_order_value),
    ("revenue_trend", ("revenue trend", "revenue growth"), _revenue_trend),
    ("best_categories", ("categories generate the most revenue", "best selling categories"), _best_categories),
    ("sales_performance", ("sales performing",), _sales_performance),
    # Inventory
    ("low_stock", ("need restocking", "low stock alert"), _low_stock_products),
    ("out_of_stock", ("out of stock",), _out_of_stock_products),
    ("inventory_value", ("inventory value",), _inventory_value),
    ("category_distribution", ("category distribution", "categories have the most products"), _category_distribution),
    ("inventory_overview", ("inventory insights",), _inventory_overview),
    # Customers
    ("customer_retention", ("customer retention",), _customer_retention),
    ("top_customers", ("top customers",), _top_customers),
    ("customer_segments", ("customer segment",), _customer_segments),
    ("customer_behavior", ("customer behavior",), _customer_behavior),
    ("customer_loyalty", ("customer loyalty",), _customer_loyalty),
    # Performance
    ("seasonal_pattern", ("seasonal pattern",), _seasonal_pattern),
    ("growth_opportunities", ("growth opportunity",), _growth_opportunities),
    ("business_performance", ("business performing",), _business_performance),
    ("growth_trend", ("growth trend", "performance trend"), _growth_trend),
    ("performance_analysis", ("performance analysis",), _performance_analysis),
    # Profitability
    ("profit_margin", ("profit margin",), _profit_margin),
    ("most_profitable", ("most profitable",), _most_profitable),
    ("cost_structure", ("cost structure",), _cost_structure),
    ("pricing_insights", ("pricing insight",), _pricing_insights),
    ("profitability", ("profitability",), _profitability),
    # Recommendations
    ("business_recommendations", (
        "business recommendation",
        "immediate action",
        "focus on to grow",
        "biggest opportunities",
        "optimize my operations",
    ), _business_recommendations),
]

# Broad topics tried when no specific intent matched
BROAD_TOPICS: List[Tuple[str, Tuple[str, ...], Template]] = [
    ("sales_performance", ("sales", "revenue", "order", "sell"), _sales_performance),
    ("inventory_overview", ("inventory", "stock", "product"), _inventory_overview),
    ("customer_behavior", ("customer", "client", "buyer"), _customer_behavior),
    ("profitability", ("profit", "margin", "cost", "price", "pricing"), _profitability),
    ("business_recommendations", ("recommend", "advice", "advise", "suggest", "improve"), _business_recommendations),
    ("growth_trend", ("trend", "growth", "grow", "performance", "perform"), _growth_trend),
]


def match_intent(query: str) -> Tuple[str, Template]:
    """Pick the template for a query: exact intents first, then broad topics, then the overview."""
    lower_query = query.lower()
    for table in (INTENTS, BROAD_TOPICS):
        for name, keywords, template in table:
            if any(k in lower_query for k in keywords):
                return name, template
    return "business_overview", _business_overview


class BusinessAnalysisService:
    """
    Rule-based business analyst used by the dashboard assistant.
    Runs locally over the rows handed in; no external calls are made.
    """

    def analyze_business_data(self, request: AnalysisRequest) -> AnalysisResponse:
        try:
            return self._perform_local_analysis(request)
        except Exception as e:
            log.error(f"Business analysis error: {str(e)}")
            raise AnalysisError("Failed to analyze business data") from e

    def _perform_local_analysis(self, request: AnalysisRequest) -> AnalysisResponse:
        intent, template = match_intent(request.query)
        metrics = compute_metrics(request.data)
        response = template(metrics)
        response.intent = intent
        log.debug(f"Analysis intent={intent} for query={request.query!r}")
        return response

    async def call_external_ai(self, prompt: str, data: Any) -> str:
        """Hook for a hosted model; not wired to a provider yet."""
        return "External AI integration coming soon!"
