"""Small builders for catalog rows, wholesale orders and plan payloads."""
from plato.extensions import db
from plato.models import OrderStatus, Recipe, WholesaleCustomer, WholesaleOrder, WholesaleOrderItem


def make_recipe(company, name='Sourdough', yield_quantity=10, yield_unit='loaf'):
    recipe = Recipe(company_id=company.id, name=name, yield_quantity=yield_quantity, yield_unit=yield_unit)
    db.session.add(recipe)
    db.session.commit()
    return recipe


def make_customer(company, name='Corner Cafe'):
    customer = WholesaleCustomer(company_id=company.id, name=name)
    db.session.add(customer)
    db.session.commit()
    return customer


def make_order(company, customer, lines, *, status=OrderStatus.CONFIRMED, delivery_date=None, **fields):
    """``lines`` is a list of (recipe, quantity) or (recipe, quantity, price) tuples."""
    order = WholesaleOrder(
        company_id=company.id,
        customer_id=customer.id if hasattr(customer, 'id') else customer,
        status=status,
        delivery_date=delivery_date,
        **fields,
    )
    for line in lines:
        recipe, quantity = line[0], line[1]
        order.items.append(
            WholesaleOrderItem(
                recipe_id=recipe.id if hasattr(recipe, 'id') else recipe,
                quantity=quantity,
                price=line[2] if len(line) > 2 else None,
            )
        )
    db.session.add(order)
    db.session.commit()
    return order


def plan_item(recipe, quantity, allocations=None, notes=None):
    return {
        'recipe_id': recipe.id if hasattr(recipe, 'id') else recipe,
        'quantity': quantity,
        'notes': notes,
        'allocations': allocations or [],
    }


def customer_allocation(customer, quantity, destination=None):
    allocation = {'customer_id': customer.id, 'quantity': quantity}
    if destination:
        allocation['destination'] = destination
    return allocation
