from dirpack.CLI import cli


if __name__ == "__main__":
    # Examples:
    #   python main.py pack backup.tar ./project
    #   python main.py list backup.tar
    #   python main.py unpack backup.tar -o extracted --pattern '*.py'
    #   python main.py unpack http://127.0.0.1:8000/backup.tar -o extracted --yes
    cli()
