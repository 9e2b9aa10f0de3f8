# main.py
from wedding import create_app, db
from wedding.models import (User, Event, Product, Category, RegistryItem, Contribution, Vendor,
                            VendorReview, Booking, Guest, TimelineItem)

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {'db': db, 'User': User, 'Event': Event, 'Product': Product, 'Category': Category,
            'RegistryItem': RegistryItem, 'Contribution': Contribution, 'Vendor': Vendor,
            'VendorReview': VendorReview, 'Booking': Booking, 'Guest': Guest,
            'TimelineItem': TimelineItem}


if __name__ == "__main__":
    app.run(debug=True)
