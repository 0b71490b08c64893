from carenotes import create_app

app = create_app()

if __name__ == '__main__':
    print(f"Using database {app.config['DATABASE_URL']}")
    print("Starting in HTTP mode (TLS disabled for local demo)...")
    app.run(debug=True, port=5001)
