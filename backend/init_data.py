"""
初始化数据脚本
创建：数据库表、默认节假日规则，并打印一个本地调试用的管理员 token
"""
import sys
sys.path.insert(0, '.')

from holiday_pricing.database import SessionLocal, init_db
from holiday_pricing.security.auth import create_access_token, ROLE_ADMIN
from holiday_pricing.services.holiday_seed import seed_holiday_data


def main():
    """主函数"""
    print("=" * 50)
    print("节假日定价服务 初始化数据")
    print("=" * 50)

    # 初始化数据库
    init_db()
    print("数据库表创建完成")

    db = SessionLocal()
    try:
        stats = seed_holiday_data(db)
        print(f"默认节假日初始化完成: {stats}")

        print("=" * 50)
        print("初始化完成！")
        print()
        print("调试用管理员 token（user_id=1）：")
        print(f"  {create_access_token(1, ROLE_ADMIN)}")
        print("=" * 50)
    finally:
        db.close()


if __name__ == '__main__':
    main()
